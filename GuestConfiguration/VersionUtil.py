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
import re

from packaging.version import InvalidVersion, Version

from .Common import CommonVariables
from .ExtensionErrors import MalformedName, NoCandidates


def parse_agent_version(agent_name):
    """
    Return the version token of an agent package name such as
    DesiredStateConfiguration_1.0.0.zip
    """
    match = re.match(CommonVariables.agent_version_regex, agent_name)
    if match is None:
        raise MalformedName('incorrect naming format for agent: {0}'.format(agent_name))
    if not match.group(2):
        raise MalformedName('missing version in agent name: {0}'.format(agent_name))
    return match.group(2)


def parse_extension_version(extension_name):
    match = re.match(CommonVariables.extension_version_regex, extension_name)
    if match is None or not match.group(2):
        raise MalformedName('could not parse extension name from: {0}'.format(extension_name))
    return match.group(2)


def to_comparable(version_string, name):
    try:
        return Version(version_string)
    except InvalidVersion:
        raise MalformedName('invalid version "{0}" in {1}'.format(version_string, name))


def select_oldest(candidates):
    """
    Return the candidate extension name carrying the smallest version.
    Every candidate must parse; an empty list raises NoCandidates.
    """
    if not candidates:
        raise NoCandidates('no extension directories to compare')

    parsed = []
    for candidate in candidates:
        version_string = parse_extension_version(candidate)
        parsed.append((to_comparable(version_string, candidate), candidate))

    oldest = parsed[0]
    for item in parsed[1:]:
        if item[0] < oldest[0]:
            oldest = item
    return oldest[1]


class VersionResolver(object):
    """
    Locates the agent package and previous extension installations.
    """
    def __init__(self, context):
        self.logger = context.logger
        self.telemetry = context.telemetry
        self.environment = context.environment

    def find_agent_package(self):
        """
        Return the name of the file in the agent zip directory whose name
        contains the agent package name and ends in .zip, or None when there
        is none. The last match in name order wins.
        """
        if not os.path.isdir(self.environment.agent_zip_dir):
            return None
        agent_package = None
        for file_name in sorted(os.listdir(self.environment.agent_zip_dir)):
            if CommonVariables.agent_package_name in file_name and \
                    file_name.endswith(CommonVariables.agent_package_extension):
                agent_package = file_name
        return agent_package

    def report_agent_version(self, agent_name):
        agent_version = parse_agent_version(agent_name)
        self.logger.event('current agent version', agentVersion=agent_version)
        self.telemetry.send(CommonVariables.telemetry_scenario,
                            'Current agent version: {0}'.format(agent_version),
                            True, 0)
        return agent_version

    def find_extension_dirs(self):
        extensions_root = self.environment.get_extensions_root()
        self.logger.event('scanning for extension directories', path=extensions_root)
        extension_dirs = []
        for name in sorted(os.listdir(extensions_root)):
            if re.search(CommonVariables.extension_dir_regex, name) and \
                    os.path.isdir(os.path.join(extensions_root, name)):
                extension_dirs.append(name)
        for name in extension_dirs:
            self.logger.log_if_verbose('found extension directory', dir=name)
        return extension_dirs

    def get_previous_agent_dir(self):
        """
        Return the agent directory of the oldest sibling extension installation,
        or None when this installation is the only one.
        """
        current = os.path.basename(self.environment.data_dir)
        extension_dirs = self.find_extension_dirs()
        if not [d for d in extension_dirs if d != current]:
            self.logger.event('no previous extension installation found')
            return None

        oldest = select_oldest(extension_dirs)
        self.logger.event('found earliest version of the extension', dir=oldest)
        old_agent_dir = self.environment.get_agent_dir_of(
            os.path.join(self.environment.get_extensions_root(), oldest))
        self.logger.event('old agent path', path=old_agent_dir)
        return old_agent_dir
