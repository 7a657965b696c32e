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
import re
import shutil
import zipfile

from .Common import CommonVariables
from .ExtensionErrors import ExtractionFailure


class ArchiveUtil(object):
    """
    Extracts the agent package into the unpack directory.
    """
    def __init__(self, context):
        self.logger = context.logger
        self.environment = context.environment

    def unzip_agent(self, agent_zip_name):
        """
        Extract agent/<agent_zip_name> into the unpack directory, overwriting
        files left by an earlier extraction. File modes stored in the archive
        are kept. Returns the list of extracted paths.
        """
        if agent_zip_name is None:
            raise ExtractionFailure('failed to find agent package containing "{0}" in {1}'.format(
                CommonVariables.agent_package_name, self.environment.agent_zip_dir))

        agent_zip = os.path.join(self.environment.agent_zip_dir, agent_zip_name)
        self.logger.event('got the agent package', path=agent_zip)
        try:
            extracted = self.extract(agent_zip, self.environment.unzip_dir)
        except (IOError, OSError, zipfile.BadZipFile) as e:
            raise ExtractionFailure('failed to unzip {0}: {1}'.format(agent_zip, e))
        self.logger.event('unzip agent successful', files=len(extracted))
        return extracted

    def extract(self, source, dest):
        filenames = []
        dest_root = os.path.realpath(dest)
        with zipfile.ZipFile(source) as archive:
            for member in archive.infolist():
                fpath = os.path.realpath(os.path.join(dest_root, member.filename))
                if fpath != dest_root and not fpath.startswith(dest_root + os.sep):
                    raise ExtractionFailure('illegal file path in archive: {0}'.format(member.filename))
                filenames.append(fpath)

                if member.filename.endswith('/'):
                    if not os.path.isdir(fpath):
                        os.makedirs(fpath)
                    continue

                parent = os.path.dirname(fpath)
                if not os.path.isdir(parent):
                    os.makedirs(parent)
                with archive.open(member) as rc, open(fpath, 'wb') as out_file:
                    shutil.copyfileobj(rc, out_file)

                mode = (member.external_attr >> 16) & 0o777
                if mode:
                    os.chmod(fpath, mode)
        return filenames

    def set_script_permissions(self):
        agent_dir = self.environment.agent_dir
        try:
            for file_name in os.listdir(agent_dir):
                if re.match(CommonVariables.script_file_regex, file_name):
                    os.chmod(os.path.join(agent_dir, file_name), CommonVariables.script_file_mode)
        except (IOError, OSError) as e:
            raise ExtractionFailure('could not set permissions for scripts in {0}: {1}'.format(agent_dir, e))
