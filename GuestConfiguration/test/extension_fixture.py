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


""" Builds a throwaway extension directory laid out the way the host agent leaves it """

import json
import os
import shutil
import tempfile
import zipfile

from GuestConfiguration.ExtensionEnvironment import ExtensionEnvironment

extension_dir_name = 'Microsoft.GuestConfiguration.ConfigurationForLinux-1.9.0'
agent_zip_name = 'DesiredStateConfiguration_1.0.0.zip'

default_scripts = {
    'install.sh': 'echo install >> "{calls}"\necho installing agent\n',
    'enable.sh': 'echo enable >> "{calls}"\necho enabling agent\n',
    'update.sh': 'echo "update $1" >> "{calls}"\necho updating agent\n',
    'disable.sh': 'echo disable >> "{calls}"\necho disabling agent\n',
    'uninstall.sh': 'echo uninstall >> "{calls}"\necho uninstalling agent\n'
}


def build_agent_zip(zip_path, scripts):
    with zipfile.ZipFile(zip_path, 'w') as archive:
        directory = zipfile.ZipInfo('DSC/')
        directory.external_attr = (0o755 << 16) | 0x10
        archive.writestr(directory, '')
        for name in sorted(scripts):
            info = zipfile.ZipInfo('DSC/' + name)
            info.external_attr = 0o644 << 16
            archive.writestr(info, '#!/bin/bash\n' + scripts[name])


class ExtensionFixture(object):
    """
    Temporary extensions root holding one extension directory with a
    HandlerEnvironment.json, a settings file and an agent package whose
    scripts record every call in a calls file.
    """
    def __init__(self, scripts=None, public_settings=None, seq_no=0, name=extension_dir_name):
        self.root = tempfile.mkdtemp()
        self.data_dir = os.path.join(self.root, name)
        self.config_dir = os.path.join(self.data_dir, 'config')
        self.status_dir = os.path.join(self.data_dir, 'status')
        self.log_dir = os.path.join(self.root, 'log')
        self.events_dir = os.path.join(self.root, 'events')
        self.dsc_config_dir = os.path.join(self.root, 'dsc')
        self.calls_file = os.path.join(self.root, 'calls')

        for d in [self.data_dir, self.config_dir, self.status_dir, self.events_dir,
                  os.path.join(self.data_dir, 'agent')]:
            os.makedirs(d)

        handler_env = [{
            "name": "Microsoft.GuestConfiguration.ConfigurationForLinux",
            "version": "1.9.0",
            "handlerEnvironment": {
                "logFolder": self.log_dir,
                "configFolder": self.config_dir,
                "statusFolder": self.status_dir,
                "heartbeatFile": os.path.join(self.data_dir, 'heartbeat.log'),
                "eventsFolder": self.events_dir
            }
        }]
        with open(os.path.join(self.data_dir, 'HandlerEnvironment.json'), 'w') as f:
            json.dump(handler_env, f)

        if seq_no is not None:
            self.write_settings(seq_no, public_settings)

        merged = dict(default_scripts)
        merged.update(scripts or {})
        build_agent_zip(os.path.join(self.data_dir, 'agent', agent_zip_name),
                        dict((k, v.format(calls=self.calls_file)) for k, v in merged.items()))

        self.environment = ExtensionEnvironment(self.data_dir, dsc_config_folder=self.dsc_config_dir)

    def write_settings(self, seq_no, public_settings=None):
        settings = {
            "runtimeSettings": [{
                "handlerSettings": {
                    "protectedSettingsCertThumbprint": None,
                    "protectedSettings": None,
                    "publicSettings": public_settings or {}
                }
            }]
        }
        with open(os.path.join(self.config_dir, '{0}.settings'.format(seq_no)), 'w') as f:
            json.dump(settings, f)

    def calls(self):
        if not os.path.isfile(self.calls_file):
            return []
        with open(self.calls_file, 'r') as f:
            return [line.strip() for line in f if line.strip()]

    def read_status(self, seq_no=0):
        with open(os.path.join(self.status_dir, '{0}.status'.format(seq_no)), 'r') as f:
            return json.load(f)[0]['status']

    def read_events(self):
        events = []
        for name in sorted(os.listdir(self.events_dir)):
            if name.endswith('.json'):
                with open(os.path.join(self.events_dir, name), 'r') as f:
                    events.extend(json.load(f))
        return events

    def cleanup(self):
        shutil.rmtree(self.root, ignore_errors=True)
