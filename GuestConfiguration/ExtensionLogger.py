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

import os
import string
import sys
import time

from .Common import CommonVariables, EventKind


def _printable(message):
    return ''.join(c for c in str(message) if c in string.printable)


def _quote(value):
    value = _printable(value).replace('\n', ' ')
    if value == '' or ' ' in value or '=' in value or '"' in value:
        return '"' + value.replace('"', '\\"') + '"'
    return value


class ExtensionLogger(object):
    """
    Structured logger for all the extension related events.
    Every line is written as logfmt key=value pairs to self.file_path and to
    self.con_path. Setting either path to None skips that output. Events of
    kind Debug are only written when verbose is enabled.
    """

    def __init__(self, file_path, con_path=CommonVariables.console_path, verbose=False,
                 version=CommonVariables.extension_version):
        self.file_path = file_path
        self.con_path = con_path
        self.verbose = verbose
        self.version = version
        self.current_process_id = os.getpid()

    def write_to_file(self, line):
        if self.file_path:
            try:
                with open(self.file_path, 'a') as f:
                    f.write(line + '\n')
            except (IOError, OSError):
                pass

    def write_to_console(self, line):
        if self.con_path:
            try:
                with open(self.con_path, 'w') as c:
                    c.write(line + '\n')
            except (IOError, OSError):
                pass

    def format_event(self, kind, message, fields):
        t = time.gmtime()
        timestamp = '%04u-%02u-%02uT%02u:%02u:%02uZ' % (t.tm_year, t.tm_mon, t.tm_mday, t.tm_hour, t.tm_min, t.tm_sec)
        pairs = [('time', timestamp),
                 ('version', self.version),
                 ('pid', self.current_process_id),
                 ('level', kind.value)]
        if message:
            pairs.append(('event', message))
        for key in sorted(fields):
            pairs.append((key, fields[key]))
        return ' '.join('{0}={1}'.format(key, _quote(value)) for key, value in pairs)

    def log_event(self, kind, message, **fields):
        if kind == EventKind.Debug and not self.verbose:
            return
        line = self.format_event(kind, message, fields)
        self.write_to_file(line)
        self.write_to_console(line)

    def log(self, message, **fields):
        self.log_event(EventKind.Info, message, **fields)

    def event(self, message, **fields):
        self.log_event(EventKind.Event, message, **fields)

    def output(self, message, **fields):
        self.log_event(EventKind.Output, message, **fields)

    def warning(self, message, **fields):
        self.log_event(EventKind.Warning, message, **fields)

    def error(self, message, **fields):
        self.log_event(EventKind.Error, message, **fields)

    def log_if_verbose(self, message, **fields):
        self.log_event(EventKind.Debug, message, **fields)


def create_logger(log_folder, verbose=False, con_path=CommonVariables.console_path):
    """
    Create the handler logger writing to <log_folder>/gcextn-handler.log.
    Falls back to console only logging when the folder cannot be created.
    """
    log_file_path = None
    try:
        if not os.path.isdir(log_folder):
            os.makedirs(log_folder, 0o755)
        log_file_path = os.path.join(log_folder, CommonVariables.extension_log_file_name)
    except OSError as e:
        sys.stderr.write('ERROR: Cannot create log folder {0}: {1}\n'.format(log_folder, e))

    logger = ExtensionLogger(log_file_path, con_path, verbose)
    logger.event('ExtensionLogPath: {0}'.format(log_file_path))
    return logger
