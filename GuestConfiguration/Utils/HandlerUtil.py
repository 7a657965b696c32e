#!/usr/bin/env python
#
# Guest Configuration extension
#
# Copyright 2018 Microsoft Corporation
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""
JSON def:
HandlerEnvironment.json
[{
  "name": "Microsoft.GuestConfiguration.ConfigurationForLinux",
  "version": "1.9.0",
  "handlerEnvironment": {
    "logFolder": "<your log folder location>",
    "configFolder": "<your config folder location>",
    "statusFolder": "<your status folder location>",
    "heartbeatFile": "<your heartbeat file location>",
    "eventsFolder": "<your events folder location>"
  }
}]

Example ./config/1.settings
{"runtimeSettings":[{"handlerSettings":{"protectedSettingsCertThumbprint":"1BE9A13AA1321C7C515EF109746998BAB6D86FD1",
"protectedSettings":"MIIByAYJKoZIhvcNAQcDoIIBuTCCAbUCAQAxggFxMIIBbQIBADBVMEExPzA9BgoJkiaJk...",
"publicSettings":{"assignmentName":"AuditSecureProtocol","contentHash":"6A7A3D1E"}}}]}

Example Status Report:
[{"version":"1.0","timestampUTC":"2014-05-29T04:20:13Z","status":{"name":"GuestConfiguration Handler","operation":"enable","status":"success","code":0,"formattedMessage":{"lang":"en-US","message":"Enable succeeded"}}}]
"""

import base64
import glob
import json
import os
import os.path
import re
import subprocess
import tempfile
import time

from ..Common import CommonVariables
from ..ExtensionErrors import ConfigurationInvalid, HandlerEnvironmentInvalid
from ..HandlerSettings import HandlerSettings

DateTimeFormat = "%Y-%m-%dT%H:%M:%SZ"


class HandlerEnvironmentContext:
    def __init__(self, name):
        self._name = name
        self._version = '0.0'
        self._seq_no = -1
        self._config_dir = None
        self._log_dir = None
        self._status_dir = None
        self._heartbeat_file = None
        self._events_dir = None
        self._settings_file = None
        return


class HandlerUtility:
    def __init__(self, logger, short_name, data_dir=None, lib_dir=CommonVariables.waagent_lib_dir):
        self.logger = logger
        self._short_name = short_name
        self._data_dir = data_dir if data_dir is not None else os.getcwd()
        self._lib_dir = lib_dir
        self._context = HandlerEnvironmentContext(self._short_name)

    def get_handler_env(self):
        # HandlerEnvironment.json always lives in the extension directory
        handler_env_file = os.path.join(self._data_dir, CommonVariables.handler_environment_file)
        if not os.path.isfile(handler_env_file):
            raise HandlerEnvironmentInvalid("Unable to locate " + handler_env_file)
        try:
            with open(handler_env_file, 'r') as f:
                handler_env = json.load(f)
        except (IOError, OSError, ValueError) as e:
            raise HandlerEnvironmentInvalid("Unable to read {0}: {1}".format(handler_env_file, e))

        if type(handler_env) == list:
            if not handler_env:
                raise HandlerEnvironmentInvalid("Empty handler environment in " + handler_env_file)
            handler_env = handler_env[0]
        if not isinstance(handler_env, dict) or 'handlerEnvironment' not in handler_env:
            raise HandlerEnvironmentInvalid("Missing handlerEnvironment in " + handler_env_file)
        return handler_env

    def try_parse_context(self):
        handler_env = self.get_handler_env()
        environment = handler_env['handlerEnvironment']
        try:
            self._context._name = handler_env.get('name', self._short_name)
            self._context._version = str(handler_env.get('version', CommonVariables.extension_version))
            self._context._config_dir = environment['configFolder']
            self._context._log_dir = environment['logFolder']
            self._context._status_dir = environment['statusFolder']
            self._context._heartbeat_file = environment.get('heartbeatFile')
            self._context._events_dir = environment.get('eventsFolder')
        except KeyError as e:
            raise HandlerEnvironmentInvalid("Missing {0} in handler environment".format(e))
        return self._context

    def get_latest_seq(self):
        settings_files = glob.glob(os.path.join(self._context._config_dir, '*.settings'))
        settings_files = [os.path.basename(f) for f in settings_files]
        seq_nums = []
        for f in settings_files:
            match = re.match(r'^(\d+)\.settings$', f)
            if match:
                seq_nums.append(int(match.group(1)))

        if seq_nums:
            return max(seq_nums)
        else:
            # guest agent is expected to provide at least one settings file to the extension
            self.logger.warning("unable to get latest sequence number from config folder",
                                path=self._context._config_dir)
            return -1

    def set_seq(self, seq_no):
        self._context._seq_no = seq_no
        self._context._settings_file = os.path.join(self._context._config_dir, str(seq_no) + '.settings')

    def get_current_seq(self):
        return int(self._context._seq_no)

    def decrypt_protected_settings(self, protected_settings, thumb):
        cert = os.path.join(self._lib_dir, thumb + '.crt')
        pkey = os.path.join(self._lib_dir, thumb + '.prv')
        try:
            encrypted = base64.b64decode(protected_settings)
        except (TypeError, ValueError) as e:
            raise ConfigurationInvalid("protected settings are not valid base64: {0}".format(e))

        with tempfile.NamedTemporaryFile(delete=False) as f:
            f.write(encrypted)
        try:
            proc = subprocess.Popen(['openssl', 'smime', '-inform', 'DER', '-decrypt',
                                     '-recip', cert, '-inkey', pkey, '-in', f.name],
                                    stdout=subprocess.PIPE, stderr=subprocess.PIPE, close_fds=True)
            cleartxt, err = proc.communicate()
        except OSError as e:
            raise ConfigurationInvalid("OpenSSL decode error using thumbprint {0}: {1}".format(thumb, e))
        finally:
            os.remove(f.name)

        if proc.returncode != 0:
            raise ConfigurationInvalid("OpenSSL decode error using thumbprint {0}: {1}".format(
                thumb, err.decode('ascii', 'ignore')))
        try:
            return json.loads(cleartxt.decode('utf-8'))
        except ValueError:
            raise ConfigurationInvalid('JSON exception loading protected settings')

    def _parse_config(self, config_txt):
        if not config_txt:
            raise ConfigurationInvalid('empty config, nothing to parse')
        try:
            config = json.loads(config_txt)
            handlerSettings = config['runtimeSettings'][0]['handlerSettings']
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ConfigurationInvalid('invalid config, could not parse: {0}'.format(e))

        if handlerSettings.get('protectedSettings') and handlerSettings.get('protectedSettingsCertThumbprint'):
            handlerSettings['protectedSettings'] = self.decrypt_protected_settings(
                handlerSettings['protectedSettings'],
                handlerSettings['protectedSettingsCertThumbprint'])
        return config

    def get_handler_settings(self):
        """
        Read, decrypt and validate <configFolder>/<seq>.settings. A missing
        settings file yields empty settings.
        """
        settings_file = self._context._settings_file
        if not settings_file or not os.path.isfile(settings_file):
            self.logger.log("no settings file found", path=settings_file)
            return HandlerSettings()

        self.logger.event("reading configuration", path=settings_file)
        try:
            with open(settings_file, 'r') as f:
                config_txt = f.read()
        except (IOError, OSError) as e:
            raise ConfigurationInvalid("error reading extension configuration: {0}".format(e))

        handler_settings = self._parse_config(config_txt)['runtimeSettings'][0]['handlerSettings']
        public_settings = handler_settings.get('publicSettings')
        if isinstance(public_settings, str):
            try:
                public_settings = json.loads(public_settings)
            except ValueError:
                raise ConfigurationInvalid('public settings are not valid json')

        settings = HandlerSettings(public_settings, handler_settings.get('protectedSettings'))
        self.logger.event("validated configuration")
        return settings

    def do_status_report(self, operation, status, status_code, message):
        latest_seq = self._context._seq_no
        if latest_seq < 0:
            self.logger.log("sequence number could not be derived from settings files, using 0.status")
            latest_seq = 0

        status_file = os.path.join(self._context._status_dir, '{0}.status'.format(latest_seq))

        if message is None:
            message = ""
        message = ''.join(c for c in message if c.isprintable() or c in '\n\t')

        self.logger.event("status report",
                          seq=latest_seq,
                          op=operation,
                          status=status,
                          code=status_code,
                          msg=message)

        tstamp = time.strftime(DateTimeFormat, time.gmtime())
        stat = [{
            "version": self._context._version,
            "timestampUTC": tstamp,
            "status": {
                "name": self._context._name,
                "operation": operation,
                "status": status,
                "code": status_code,
                "formattedMessage": {
                    "lang": "en-US",
                    "message": message
                }
            }
        }]

        stat_rept = json.dumps(stat)
        # the host agent may read the status file at any time, so replace it atomically
        if not os.path.isdir(self._context._status_dir):
            os.makedirs(self._context._status_dir)
        tmp_file = status_file + '.tmp'
        with open(tmp_file, 'w+') as f:
            f.write(stat_rept)
        os.rename(tmp_file, status_file)
