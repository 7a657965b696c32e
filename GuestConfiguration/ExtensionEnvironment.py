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
from collections import namedtuple

from .Common import CommonVariables


class ExtensionEnvironment(object):
    """
    Paths used by the handler, all derived from the extension data directory.
    The data directory is the extension directory the host agent starts the
    handler in.
    """
    def __init__(self, data_dir=None, dsc_config_folder=CommonVariables.dsc_config_folder):
        if data_dir is None:
            data_dir = os.getcwd()
        self.data_dir = os.path.abspath(data_dir)
        self.most_recent_sequence_path = os.path.join(self.data_dir, CommonVariables.most_recent_sequence)
        self.agent_zip_dir = os.path.join(self.data_dir, CommonVariables.agent_zip_dir)
        self.unzip_dir = os.path.join(self.data_dir, CommonVariables.unzip_agent_dir)
        self.agent_dir = os.path.join(self.unzip_dir, CommonVariables.agent_name)
        self.update_failed_path = os.path.join(self.data_dir, CommonVariables.update_failed_file_name)
        self.dsc_config_path = os.path.join(dsc_config_folder, CommonVariables.dsc_config_file_name)

    def get_extensions_root(self):
        return os.path.dirname(self.data_dir)

    def get_agent_dir_of(self, extension_dir):
        return os.path.join(extension_dir, CommonVariables.unzip_agent_dir, CommonVariables.agent_name)

    def is_agent_unpacked(self):
        return os.path.isdir(self.agent_dir)

    def is_update_failed(self):
        return os.path.isfile(self.update_failed_path)

    def mark_update_failed(self, message):
        with open(self.update_failed_path, 'w') as f:
            f.write(message)

    def clear_update_failed(self):
        if os.path.isfile(self.update_failed_path):
            os.remove(self.update_failed_path)


HandlerContext = namedtuple('HandlerContext',
                            [
                                'logger',
                                'telemetry',
                                'environment'
                            ])
