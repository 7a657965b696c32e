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

""" Unit tests for the ExtensionErrors module """

import unittest

from GuestConfiguration.ExtensionErrors import AgentHealthCheckFailure, ScriptFailure


class TestExtensionErrors(unittest.TestCase):
    def test_wrap_keeps_type_and_details(self):
        error = AgentHealthCheckFailure('agent health check failed with exit code 1', '\n[stdout]\nout')
        wrapped = error.wrap("Operation 'enable' failed")

        self.assertIsInstance(wrapped, AgentHealthCheckFailure)
        self.assertEqual(str(wrapped), "Operation 'enable' failed: agent health check failed with exit code 1")
        self.assertEqual(wrapped.details, '\n[stdout]\nout')

    def test_error_message_leaves_out_details(self):
        error = ScriptFailure('enable agent failed with exit code 2', 'x' * 4096)
        self.assertEqual(error.get_error_message(), 'ScriptFailure: enable agent failed with exit code 2')
        self.assertEqual(error.get_status_message(), 'enable agent failed with exit code 2' + 'x' * 4096)

    def test_status_message_without_details(self):
        self.assertEqual(ScriptFailure('boom').get_status_message(), 'boom')
