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

from enum import Enum


class CommonVariables:
    extension_name = 'Microsoft.Azure.Extensions.GuestConfigurationForLinux'
    extension_short_name = 'GuestConfigurationForLinux'
    extension_version = '1.9.0'

    """
    handler environment
    """
    handler_environment_file = 'HandlerEnvironment.json'
    extension_log_file_name = 'gcextn-handler.log'
    console_path = '/dev/stdout'

    """
    data directory layout, relative to the extension directory
    """
    most_recent_sequence = 'mrseq'
    unzip_agent_dir = 'GCAgent'
    agent_zip_dir = 'agent'
    agent_name = 'DSC'
    agent_package_name = 'DesiredStateConfiguration'
    agent_package_extension = '.zip'
    update_failed_file_name = 'update_failed'

    """
    file name patterns
    """
    agent_version_regex = r'^([./a-zA-Z0-9]*)_([0-9.]*)?[.](.*)$'
    extension_version_regex = r'^([./a-zA-Z]*)-([0-9.]*)?$'
    extension_dir_regex = r'Microsoft.GuestConfiguration.?(Edp)?.ConfigurationForLinux-([0-9.]*)'
    script_file_regex = r'.*\.sh$'
    script_file_mode = 0o744

    """
    lifecycle scripts shipped in the agent package
    """
    install_script = 'bash ./install.sh'
    enable_script = 'bash ./enable.sh'
    update_script = 'bash ./update.sh'
    disable_script = 'bash ./disable.sh'
    uninstall_script = 'bash ./uninstall.sh'

    """
    output collection
    """
    stdout_file_name = 'stdout'
    stderr_file_name = 'stderr'
    max_tail_len = 4 * 1024
    max_telemetry_tail_len = 1800

    """
    dsc assignment config
    """
    dsc_config_folder = '/var/lib/GuestConfig/dsc'
    dsc_config_file_name = 'dsc.config'

    """
    settings keys
    """
    SkipDos2UnixKey = 'skipDos2Unix'
    CommandToExecuteKey = 'commandToExecute'
    ScriptKey = 'script'
    FileUrisKey = 'fileUris'
    StorageAccountNameKey = 'storageAccountName'
    StorageAccountKeyKey = 'storageAccountKey'
    AssignmentNameKey = 'assignmentName'
    ContentHashKey = 'contentHash'

    telemetry_scenario = 'scenario'
    waagent_lib_dir = '/var/lib/waagent'


class ExitCodes:
    success = 0
    failure = -1
    invalid_command = 2

    install = 100
    enable = 200
    agent_health_check_failed = 201
    update = 300
    disable = 400
    uninstall = 500


class Operation:
    Install = 'install'
    Enable = 'enable'
    Update = 'update'
    Disable = 'disable'
    Uninstall = 'uninstall'


class Status:
    Transitioning = 'transitioning'
    Error = 'error'
    Success = 'success'


class EventKind(Enum):
    Info = 'info'
    Event = 'event'
    Output = 'output'
    Warning = 'warning'
    Error = 'error'
    Debug = 'debug'
