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


import json
import os
import os.path
import tempfile
import threading
import time
from datetime import datetime

import distro


def get_os_version():
    return '{0}:{1}'.format(distro.id(), distro.version())


class TelemetryEvent(object):
    def __init__(self, name, version, operation, is_success, message, duration):
        self.name = name
        self.version = version
        self.operation = operation
        self.is_success = is_success
        self.message = message
        self.duration = duration
        self.timestamp = datetime.utcnow().isoformat()
        self.event_pid = str(os.getpid())
        self.event_tid = str(threading.get_ident()).zfill(8)
        self.os_version = get_os_version()

    def convertToDictionary(self):
        return dict(Name=self.name,
                    Version=self.version,
                    Operation=self.operation,
                    OperationSuccess=self.is_success,
                    Message=self.message,
                    Duration=self.duration,
                    Timestamp=self.timestamp,
                    EventPid=self.event_pid,
                    EventTid=self.event_tid,
                    OSVersion=self.os_version)


class TelemetrySender(object):
    """
    Writes extension events into the host agent events folder. Each call to
    send produces one event file. Sending is best effort: failures are logged
    and never raised. Without an events folder nothing is written.
    """
    def __init__(self, logger, events_folder, extension_name, extension_version):
        self.logger = logger
        self.events_folder = events_folder
        self.extension_name = extension_name
        self.extension_version = extension_version

    def send(self, operation, message, is_success, duration):
        if not self.events_folder or not os.path.isdir(self.events_folder):
            self.logger.log_if_verbose('telemetry disabled, no events folder', operation=operation)
            return False

        event = TelemetryEvent(self.extension_name, self.extension_version,
                               operation, is_success, message, duration)
        try:
            fd, tmp_path = tempfile.mkstemp(prefix='{0}_'.format(int(time.time() * 1000000)),
                                            suffix='.tmp', dir=self.events_folder)
            with os.fdopen(fd, 'w') as f:
                f.write(json.dumps([event.convertToDictionary()]))
            os.rename(tmp_path, tmp_path[:-len('.tmp')] + '.json')
        except (IOError, OSError, ValueError) as e:
            self.logger.warning('failed to send telemetry', operation=operation, error=e)
            return False
        return True
