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


""" Unit tests for the ArchiveUtil module """

import os
import stat
import unittest
import zipfile

from GuestConfiguration.ArchiveUtil import ArchiveUtil
from GuestConfiguration.ExtensionEnvironment import HandlerContext
from GuestConfiguration.ExtensionErrors import ExtractionFailure
from .console_logger import ConsoleLogger
from .extension_fixture import ExtensionFixture, agent_zip_name


class TestArchiveUtil(unittest.TestCase):
    def setUp(self):
        self.fixture = ExtensionFixture()
        self.environment = self.fixture.environment
        self.archive_util = ArchiveUtil(HandlerContext(logger=ConsoleLogger(), telemetry=None,
                                                       environment=self.environment))

    def tearDown(self):
        self.fixture.cleanup()

    def snapshot(self):
        contents = {}
        for dirpath, dirnames, filenames in os.walk(self.environment.unzip_dir):
            for name in filenames:
                path = os.path.join(dirpath, name)
                with open(path, 'rb') as f:
                    contents[path] = (f.read(), stat.S_IMODE(os.stat(path).st_mode))
        return contents

    def test_unzip_agent(self):
        extracted = self.archive_util.unzip_agent(agent_zip_name)
        self.assertTrue(self.environment.is_agent_unpacked())
        self.assertIn(os.path.join(os.path.realpath(self.environment.agent_dir), 'install.sh'), extracted)

    def test_unzip_keeps_file_modes(self):
        self.archive_util.unzip_agent(agent_zip_name)
        mode = stat.S_IMODE(os.stat(os.path.join(self.environment.agent_dir, 'enable.sh')).st_mode)
        self.assertEqual(mode, 0o644)

    def test_unzip_twice_gives_same_tree(self):
        self.archive_util.unzip_agent(agent_zip_name)
        first = self.snapshot()
        self.archive_util.unzip_agent(agent_zip_name)
        self.assertEqual(self.snapshot(), first)

    def test_set_script_permissions(self):
        self.archive_util.unzip_agent(agent_zip_name)
        self.archive_util.set_script_permissions()
        for name in ['install.sh', 'enable.sh', 'disable.sh']:
            mode = stat.S_IMODE(os.stat(os.path.join(self.environment.agent_dir, name)).st_mode)
            self.assertEqual(mode, 0o744)

    def test_missing_package(self):
        self.assertRaises(ExtractionFailure, self.archive_util.unzip_agent, None)

    def test_corrupt_package(self):
        with open(os.path.join(self.environment.agent_zip_dir, 'DSC_2.0.0.zip'), 'w') as f:
            f.write('not a zip file')
        self.assertRaises(ExtractionFailure, self.archive_util.unzip_agent, 'DSC_2.0.0.zip')

    def test_entry_outside_destination(self):
        with zipfile.ZipFile(os.path.join(self.environment.agent_zip_dir, 'DSC_3.0.0.zip'), 'w') as archive:
            archive.writestr('../../escape.sh', 'echo escaped')
        self.assertRaises(ExtractionFailure, self.archive_util.unzip_agent, 'DSC_3.0.0.zip')
        self.assertFalse(os.path.exists(os.path.join(self.fixture.root, 'escape.sh')))
