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

""" Unit tests for the OutputCollector module """

import os
import shutil
import tempfile
import unittest
from unittest import mock

from GuestConfiguration.Common import EventKind
from GuestConfiguration.ExtensionEnvironment import HandlerContext
from GuestConfiguration.OutputCollector import OutputCollector, get_formatted_log, tail
from .console_logger import ConsoleLogger


class TestOutputCollector(unittest.TestCase):
    def setUp(self):
        self.log_dir = tempfile.mkdtemp()
        self.logger = ConsoleLogger()
        self.telemetry = mock.Mock()
        self.collector = OutputCollector(HandlerContext(logger=self.logger, telemetry=self.telemetry,
                                                        environment=None))

    def tearDown(self):
        shutil.rmtree(self.log_dir, ignore_errors=True)

    def write(self, name, content):
        with open(os.path.join(self.log_dir, name), 'wb') as f:
            f.write(content)

    def test_tail_of_large_stdout(self):
        content = ''.join(chr(ord('a') + i % 26) for i in range(10000)).encode('ascii')
        self.write('stdout', content)
        self.write('stderr', b'boom')

        stdout_tail, stderr_tail = self.collector.collect(self.log_dir)
        self.assertEqual(len(stdout_tail), 4096)
        self.assertEqual(stdout_tail, content[-4096:])
        self.assertEqual(stderr_tail, b'boom')

        message = get_formatted_log(stdout_tail, stderr_tail)
        self.assertEqual(message, '\n[stdout]\n' + content[-1800:].decode('ascii') + '\n[stderr]\nboom')

    def test_tail_of_multibyte_output(self):
        content = 'héllo\n'.encode('utf-8') * 1429
        self.assertEqual(len(content), 10003)
        self.write('stdout', content)

        stdout_tail, stderr_tail = self.collector.collect(self.log_dir)
        self.assertEqual(len(stdout_tail), 4096)
        self.assertEqual(stdout_tail, content[-4096:])
        self.assertEqual(stderr_tail, b'')

    def test_tail_of_small_file(self):
        self.write('stdout', b'hello')
        self.assertEqual(tail(os.path.join(self.log_dir, 'stdout')), b'hello')

    def test_tail_keeps_raw_bytes(self):
        self.write('stdout', b'ok\x00\x07done\xff')
        self.assertEqual(tail(os.path.join(self.log_dir, 'stdout')), b'ok\x00\x07done\xff')

    def test_formatted_log_strips_control_characters(self):
        message = get_formatted_log(b'ok\x00\x07done\n', 'héllo'.encode('utf-8'))
        self.assertEqual(message, '\n[stdout]\nokdone\n\n[stderr]\nhéllo')

    def test_missing_files_yield_empty_tails(self):
        self.assertEqual(self.collector.collect(self.log_dir), (b'', b''))
        self.assertEqual(len(self.logger.messages(EventKind.Warning)), 2)

    def test_report_sends_truncated_telemetry(self):
        self.write('stdout', b'x' * 5000)
        status_message = self.collector.report(self.log_dir, False)

        self.assertEqual(status_message, '\n[stdout]\n' + 'x' * 4096 + '\n[stderr]\n')
        self.telemetry.send.assert_called_once_with('output', '\n[stdout]\n' + 'x' * 1800 + '\n[stderr]\n',
                                                    False, 0)
        self.assertEqual(self.logger.messages(EventKind.Output), ['script output'])
