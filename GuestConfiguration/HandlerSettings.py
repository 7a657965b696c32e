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


from .Common import CommonVariables
from .ExtensionErrors import ConfigurationInvalid

string_keys = [
    CommonVariables.CommandToExecuteKey,
    CommonVariables.ScriptKey,
    CommonVariables.StorageAccountNameKey,
    CommonVariables.StorageAccountKeyKey,
    CommonVariables.AssignmentNameKey,
    CommonVariables.ContentHashKey
]


def validate_types(settings, section):
    if settings is None:
        return {}
    if not isinstance(settings, dict):
        raise ConfigurationInvalid('{0} settings must be a json object'.format(section))

    for key in string_keys:
        if key in settings and not isinstance(settings[key], str):
            raise ConfigurationInvalid("'{0}' in {1} settings must be a string".format(key, section))

    if CommonVariables.SkipDos2UnixKey in settings and \
            not isinstance(settings[CommonVariables.SkipDos2UnixKey], bool):
        raise ConfigurationInvalid("'{0}' in {1} settings must be a boolean".format(
            CommonVariables.SkipDos2UnixKey, section))

    file_uris = settings.get(CommonVariables.FileUrisKey)
    if file_uris is not None and \
            (not isinstance(file_uris, list) or not all(isinstance(u, str) for u in file_uris)):
        raise ConfigurationInvalid("'{0}' in {1} settings must be a list of strings".format(
            CommonVariables.FileUrisKey, section))
    return settings


class HandlerSettings(object):
    """
    Public and protected settings of one N.settings file, after type and
    logical validation.
    """
    def __init__(self, public_settings=None, protected_settings=None):
        self.public_settings = validate_types(public_settings, 'public')
        self.protected_settings = validate_types(protected_settings, 'protected')
        self.validate()

    def _get(self, key):
        return self.public_settings.get(key) or self.protected_settings.get(key) or ''

    def command_to_execute(self):
        return self._get(CommonVariables.CommandToExecuteKey)

    def script(self):
        return self._get(CommonVariables.ScriptKey)

    def assignment_name(self):
        return self.public_settings.get(CommonVariables.AssignmentNameKey, '')

    def content_hash(self):
        return self.public_settings.get(CommonVariables.ContentHashKey, '')

    def validate(self):
        public = self.public_settings
        protected = self.protected_settings

        if public.get(CommonVariables.CommandToExecuteKey) and protected.get(CommonVariables.CommandToExecuteKey):
            raise ConfigurationInvalid("'commandToExecute' was specified both in public and protected settings; "
                                       "it must be specified only once")

        if public.get(CommonVariables.ScriptKey) and protected.get(CommonVariables.ScriptKey):
            raise ConfigurationInvalid("'script' was specified both in public and protected settings; "
                                       "it must be specified only once")

        if self.command_to_execute() and self.script():
            raise ConfigurationInvalid("'commandToExecute' and 'script' were both specified, "
                                       "but only one is valid at a time")

        if bool(protected.get(CommonVariables.StorageAccountNameKey)) != \
                bool(protected.get(CommonVariables.StorageAccountKeyKey)):
            raise ConfigurationInvalid("both 'storageAccountName' and 'storageAccountKey' must be specified")

        if bool(self.assignment_name()) != bool(self.content_hash()):
            raise ConfigurationInvalid("both 'assignmentName' and 'contentHash' must be specified")
