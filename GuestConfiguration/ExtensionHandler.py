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


import os.path
from collections import namedtuple

from .ArchiveUtil import ArchiveUtil
from .CommandExecutor import CommandExecutor
from .Common import CommonVariables, ExitCodes, Operation, Status
from .DscConfigUtil import DscConfigUtil
from .ExtensionErrors import (AgentHealthCheckFailure, ConfigurationInvalid, ExtractionFailure,
                              GuestConfigurationException, PersistenceFailure, ScriptFailure)
from .LifecycleStateMachine import LifecycleStateMachine
from .OutputCollector import OutputCollector
from .SequenceNumberGate import SequenceNumberGate
from .VersionUtil import VersionResolver

OperationResult = namedtuple('OperationResult',
                             [
                                 'operation',
                                 'exit_code',
                                 'status',
                                 'message',
                                 'should_report_status'
                             ])

failure_exit_codes = {
    Operation.Install: ExitCodes.install,
    Operation.Enable: ExitCodes.enable,
    Operation.Update: ExitCodes.update,
    Operation.Disable: ExitCodes.disable,
    Operation.Uninstall: ExitCodes.uninstall
}

# operations writing a status file for the host agent
status_operations = [Operation.Enable, Operation.Update, Operation.Disable]


def get_failure_exit_code(operation, error):
    if isinstance(error, AgentHealthCheckFailure):
        return ExitCodes.agent_health_check_failed
    return failure_exit_codes[operation]


class ExtensionHandler(object):
    """
    Runs one lifecycle operation against the agent package.

    Every operation walks the LifecycleStateMachine. Errors are raised as
    GuestConfigurationException with the operation as context; handle.main
    turns them into the exit code and the status file content. Script
    failures during disable and uninstall are logged and reported as
    telemetry but do not fail the operation.
    """
    def __init__(self, context, hutil):
        self.logger = context.logger
        self.telemetry = context.telemetry
        self.environment = context.environment
        self.hutil = hutil

        self.gate = SequenceNumberGate(context)
        self.resolver = VersionResolver(context)
        self.archive_util = ArchiveUtil(context)
        self.output_collector = OutputCollector(context)
        self.dsc_config_util = DscConfigUtil(context)
        self.command_executor = CommandExecutor(self.logger)

        self.machine = None
        self.transitioning_reported = False
        self.operations = {
            Operation.Install: self.install,
            Operation.Enable: self.enable,
            Operation.Update: self.update,
            Operation.Disable: self.disable,
            Operation.Uninstall: self.uninstall
        }

    def resolve_sequence_number(self, operation):
        seq_no = self.hutil.get_latest_seq()
        if seq_no < 0:
            if operation != Operation.Install:
                raise ConfigurationInvalid('failed to find sequence number')
            self.logger.warning('no sequence number found, using 0', operation=operation)
            seq_no = 0
        self.hutil.set_seq(seq_no)
        self.logger.event('sequence number found', seqNum=seq_no)
        return seq_no

    def run(self, operation):
        self.machine = LifecycleStateMachine(self.logger, operation)
        self.transitioning_reported = False
        try:
            result = self.operations[operation]()
        except GuestConfigurationException as e:
            self.machine.fail()
            raise e.wrap("Operation '{0}' failed".format(operation)) from e
        self.machine.finish()
        return result

    def succeeded(self, operation, message=None):
        if message is None:
            message = "Operation '{0}' succeeded.".format(operation)
        return OperationResult(operation=operation,
                               exit_code=ExitCodes.success,
                               status=Status.Success,
                               message=message,
                               should_report_status=operation in status_operations)

    def report_transitioning(self, operation):
        self.hutil.do_status_report(operation, Status.Transitioning, ExitCodes.success, 'Transitioning')
        self.transitioning_reported = True

    def run_script(self, script, args=None):
        return self.command_executor.Execute(script, self.environment.agent_dir, args)

    def extract_agent(self, agent_zip_name):
        self.archive_util.unzip_agent(agent_zip_name)
        if not self.environment.is_agent_unpacked():
            raise ExtractionFailure('agent directory {0} missing after unzip'.format(self.environment.agent_dir))
        self.archive_util.set_script_permissions()

    def install(self):
        self.machine.gate()
        self.logger.event('installed')
        return self.succeeded(Operation.Install)

    def enable(self):
        self.machine.gate()
        try:
            should_skip = self.gate.check_and_save(self.hutil.get_current_seq())
        except PersistenceFailure as e:
            raise e.wrap('failed to process sequence number') from e
        if should_skip:
            self.logger.event('this sequence number is not newer than the processed one, will not run again')
            return OperationResult(operation=Operation.Enable,
                                   exit_code=ExitCodes.success,
                                   status=Status.Success,
                                   message='Sequence number already processed',
                                   should_report_status=False)

        self.report_transitioning(Operation.Enable)

        self.machine.load_settings()
        try:
            settings = self.hutil.get_handler_settings()
        except ConfigurationInvalid as e:
            raise e.wrap('failed to get configuration') from e

        self.machine.resolve_payload()
        agent_zip_name = self.resolver.find_agent_package()
        if agent_zip_name is not None:
            self.resolver.report_agent_version(agent_zip_name)
        else:
            self.logger.warning('no agent package found', path=self.environment.agent_zip_dir)

        self.machine.unpack()
        health_check = self.environment.is_agent_unpacked() and not self.environment.is_update_failed()
        if health_check:
            self.logger.event('agent directory exists, skipping unzip', path=self.environment.agent_dir)
        else:
            if self.environment.is_update_failed():
                self.logger.warning('previous update failed, reinstalling agent')
            self.extract_agent(agent_zip_name)

        self.machine.run_scripts()
        if health_check:
            self.logger.event('running agent health check')
            run_result = self.run_script(CommonVariables.enable_script)
        else:
            self.logger.event('installing agent')
            run_result = self.run_script(CommonVariables.install_script)
            if run_result.succeeded:
                self.logger.event('agent installation succeeded, enabling agent')
                run_result = self.run_script(CommonVariables.enable_script)
            else:
                self.logger.error('agent installation failed', exitCode=run_result.exit_code)

        self.machine.report()
        message = self.output_collector.report(self.environment.agent_dir, run_result.succeeded)
        if not run_result.succeeded:
            if health_check:
                raise AgentHealthCheckFailure('agent health check failed with exit code {0}'.format(
                    run_result.exit_code), message)
            raise ScriptFailure('enable agent failed with exit code {0}'.format(run_result.exit_code), message)

        self.environment.clear_update_failed()
        try:
            self.dsc_config_util.update_assignment(settings.assignment_name(), settings.content_hash())
        except PersistenceFailure as e:
            self.logger.warning('failed to update assignment', error=e)

        self.logger.event('enabled')
        return self.succeeded(Operation.Enable, message)

    def update(self):
        self.machine.gate()
        self.report_transitioning(Operation.Update)

        self.machine.load_settings()
        try:
            self.hutil.get_handler_settings()
        except ConfigurationInvalid as e:
            raise e.wrap('failed to get configuration') from e

        self.machine.resolve_payload()
        old_agent_dir = self.resolver.get_previous_agent_dir()
        if old_agent_dir is None or os.path.normpath(old_agent_dir) == os.path.normpath(self.environment.agent_dir):
            self.logger.event('no previous agent to update from')
            return self.succeeded(Operation.Update)

        self.machine.unpack()
        if not self.environment.is_agent_unpacked():
            self.extract_agent(self.resolver.find_agent_package())

        self.machine.run_scripts()
        self.logger.event('updating agent', oldAgent=old_agent_dir)
        run_result = self.run_script(CommonVariables.update_script, [old_agent_dir])

        self.machine.report()
        message = self.output_collector.report(self.environment.agent_dir, run_result.succeeded)
        if not run_result.succeeded:
            error = ScriptFailure('update agent failed with exit code {0}'.format(run_result.exit_code), message)
            try:
                self.environment.mark_update_failed(str(error))
            except (IOError, OSError) as e:
                self.logger.error('failed to write update failed marker', error=e)
            raise error

        self.logger.event('updated')
        return self.succeeded(Operation.Update, message)

    def run_tolerated_script(self, operation, script):
        """
        Run script for disable or uninstall. A failure is logged and sent as
        telemetry, then the operation carries on.
        """
        self.machine.unpack()
        if not self.environment.is_agent_unpacked():
            self.logger.warning('agent directory not found, nothing to run', path=self.environment.agent_dir)
            self.machine.run_scripts()
            self.machine.report()
            return self.succeeded(operation)

        self.machine.run_scripts()
        run_result = self.run_script(script)

        self.machine.report()
        message = self.output_collector.report(self.environment.agent_dir, run_result.succeeded)
        if run_result.succeeded:
            self.logger.event('agent {0} succeeded'.format(operation))
        else:
            self.logger.error('agent {0} failed'.format(operation), exitCode=run_result.exit_code)
            self.telemetry.send(CommonVariables.telemetry_scenario,
                                "Operation '{0}' script failed with exit code {1}, ignoring.".format(
                                    operation, run_result.exit_code),
                                False, run_result.duration)
        return self.succeeded(operation, message)

    def disable(self):
        self.machine.gate()
        self.report_transitioning(Operation.Disable)

        self.machine.load_settings()
        try:
            self.hutil.get_handler_settings()
        except ConfigurationInvalid as e:
            raise e.wrap('failed to get configuration') from e

        self.machine.resolve_payload()
        self.logger.event('disabling agent')
        return self.run_tolerated_script(Operation.Disable, CommonVariables.disable_script)

    def uninstall(self):
        self.machine.gate()
        self.machine.load_settings()
        self.machine.resolve_payload()
        self.logger.event('uninstalling agent')
        return self.run_tolerated_script(Operation.Uninstall, CommonVariables.uninstall_script)
