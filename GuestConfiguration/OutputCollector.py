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
import os.path

from .Common import CommonVariables
from .CommandExecutor import get_log_paths


def tail(log_file, output_size=CommonVariables.max_tail_len):
    """
    Return up to output_size bytes from the end of log_file, unchanged.
    """
    pos = min(output_size, os.path.getsize(log_file))
    with open(log_file, 'rb') as log:
        log.seek(-pos, 2)
        return log.read(output_size)


def to_printable(buf):
    text = buf.decode('utf-8', 'replace')
    return ''.join(c for c in text if c.isprintable() or c in '\n\t')


def get_formatted_log(stdout, stderr, output_size=CommonVariables.max_telemetry_tail_len):
    """
    Format the last output_size bytes of the stdout and stderr tails as text.
    """
    msg_format = ('\n'
                  '[stdout]\n'
                  '{0}\n'
                  '[stderr]\n'
                  '{1}')
    return msg_format.format(to_printable(stdout[len(stdout) - min(len(stdout), output_size):]),
                             to_printable(stderr[len(stderr) - min(len(stderr), output_size):]))


class OutputCollector(object):
    """
    Collects the stdout and stderr tails left by the lifecycle scripts and
    forwards them as telemetry.
    """
    def __init__(self, context):
        self.logger = context.logger
        self.telemetry = context.telemetry

    def tail_or_empty(self, log_file):
        try:
            return tail(log_file)
        except (IOError, OSError) as e:
            self.logger.warning('error tailing log file', path=log_file, error=e)
            return b''

    def collect(self, log_dir):
        stdout_path, stderr_path = get_log_paths(log_dir)
        return self.tail_or_empty(stdout_path), self.tail_or_empty(stderr_path)

    def report(self, log_dir, succeeded):
        """
        Send the stdout and stderr tails, cut down to the telemetry size, as
        telemetry. Returns the full size tails formatted for the status file.
        """
        stdout_tail, stderr_tail = self.collect(log_dir)
        telemetry_message = get_formatted_log(stdout_tail, stderr_tail)
        self.logger.output('script output', succeeded=succeeded, output=telemetry_message)
        self.telemetry.send('output', telemetry_message, succeeded, 0)
        return get_formatted_log(stdout_tail, stderr_tail, CommonVariables.max_tail_len)
