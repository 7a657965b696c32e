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

from .ExtensionErrors import PersistenceFailure


class DscConfigUtil(object):
    """
    Keeps the guest assignment list in the dsc.config file in sync with the
    assignment carried by the extension settings.
    dsc.config format: {"Assignments": [{"name": "...", "contentHash": "..."}]}
    """
    def __init__(self, context):
        self.logger = context.logger
        self.dsc_config_path = context.environment.dsc_config_path

    def get_config(self):
        if not os.path.isfile(self.dsc_config_path):
            return {}
        try:
            with open(self.dsc_config_path, 'r') as f:
                config = json.load(f)
        except ValueError as e:
            self.logger.warning('dsc config is not valid json, rewriting it', path=self.dsc_config_path, error=e)
            return {}
        except (IOError, OSError) as e:
            raise PersistenceFailure('failed to read {0}: {1}'.format(self.dsc_config_path, e))
        if not isinstance(config, dict):
            return {}
        return config

    def update_assignment(self, assignment_name, content_hash):
        if not assignment_name or not content_hash:
            return False

        config = self.get_config()
        assignments = config.get('Assignments')
        if not isinstance(assignments, list):
            assignments = []
            config['Assignments'] = assignments

        assignment_exists = False
        for assignment in assignments:
            if isinstance(assignment, dict) and assignment.get('name') == assignment_name:
                assignment_exists = True
                assignment['contentHash'] = content_hash
        if not assignment_exists:
            assignments.append({'name': assignment_name, 'contentHash': content_hash})

        try:
            parent = os.path.dirname(self.dsc_config_path)
            if not os.path.isdir(parent):
                os.makedirs(parent)
            with open(self.dsc_config_path, 'w') as f:
                json.dump(config, f)
            os.chmod(self.dsc_config_path, 0o644)
        except (IOError, OSError) as e:
            raise PersistenceFailure('failed to write {0}: {1}'.format(self.dsc_config_path, e))

        self.logger.event('updated assignment', name=assignment_name, contentHash=content_hash)
        return True
