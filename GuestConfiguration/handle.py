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


import re
import sys
import traceback

from .Common import CommonVariables, ExitCodes, Operation, Status
from .ExtensionEnvironment import ExtensionEnvironment, HandlerContext
from .ExtensionErrors import GuestConfigurationException, HandlerEnvironmentInvalid
from .ExtensionHandler import ExtensionHandler, OperationResult, get_failure_exit_code, status_operations
from .ExtensionLogger import create_logger
from .TelemetrySender import TelemetrySender, get_os_version
from .Utils import HandlerUtil

operations = [Operation.Install, Operation.Enable, Operation.Update, Operation.Disable, Operation.Uninstall]


def usage():
    print("Usage: {0} {1}".format(CommonVariables.extension_short_name, ' | '.join(operations)))
    print("Optional flags: -verbose | -debug")


def parse_args(args):
    """
    Return (operation, verbose), or None when the arguments are not exactly
    one known operation plus optional flags.
    """
    verbose = False
    positional = []
    for a in args:
        if re.match(r"^-{1,2}(verbose|debug)$", a, re.IGNORECASE):
            verbose = True
        else:
            positional.append(a)

    if len(positional) != 1:
        if not positional:
            print("Not enough arguments, {0}".format(len(positional)))
        else:
            print("Too many arguments: {0}".format(positional))
        return None

    match = re.match(r"^[-/]*(install|enable|update|disable|uninstall)$", positional[0], re.IGNORECASE)
    if match is None:
        print("Incorrect command: \"{0}\"".format(positional[0]))
        return None
    return match.group(1).lower(), verbose


def run_operation(operation, verbose=False, environment=None, con_path=CommonVariables.console_path,
                  lib_dir=CommonVariables.waagent_lib_dir):
    """
    Run one operation and return the process exit code. Status file and
    telemetry content for failures are decided here.
    """
    if environment is None:
        environment = ExtensionEnvironment()

    hutil = HandlerUtil.HandlerUtility(None, CommonVariables.extension_short_name, environment.data_dir, lib_dir)
    try:
        handler_context = hutil.try_parse_context()
    except HandlerEnvironmentInvalid as e:
        sys.stderr.write("Failed to parse handler environment: {0}\n".format(e))
        return ExitCodes.failure

    logger = create_logger(handler_context._log_dir, verbose, con_path)
    hutil.logger = logger
    telemetry = TelemetrySender(logger, handler_context._events_dir,
                                handler_context._name, handler_context._version)
    logger.event('{0} started to handle.'.format(handler_context._name),
                 handlerVersion=handler_context._version,
                 operation=operation,
                 os=get_os_version())

    context = HandlerContext(logger=logger, telemetry=telemetry, environment=environment)
    handler = ExtensionHandler(context, hutil)

    try:
        handler.resolve_sequence_number(operation)
        result = handler.run(operation)
    except GuestConfigurationException as e:
        logger.error(str(e), errorKind=e.error_kind)
        telemetry.send(CommonVariables.telemetry_scenario, e.get_error_message(), False, 0)
        result = OperationResult(operation=operation,
                                 exit_code=get_failure_exit_code(operation, e),
                                 status=Status.Error,
                                 message=e.get_status_message(),
                                 should_report_status=handler.transitioning_reported)
    except Exception as e:
        message = "Unexpected error during {0}: {1}, stack trace: {2}".format(operation, e, traceback.format_exc())
        logger.error(message)
        telemetry.send(CommonVariables.telemetry_scenario, message, False, 0)
        result = OperationResult(operation=operation,
                                 exit_code=get_failure_exit_code(operation, e),
                                 status=Status.Error,
                                 message=message,
                                 should_report_status=operation in status_operations)
    else:
        logger.event(result.message)
        telemetry.send(CommonVariables.telemetry_scenario,
                       "Operation '{0}' succeeded.".format(operation), True, 0)

    if result.should_report_status:
        try:
            hutil.do_status_report(operation, result.status, result.exit_code, result.message)
        except (IOError, OSError) as e:
            logger.error("Can't update status", error=e)

    logger.event('exited', operation=operation, exitCode=result.exit_code)
    return result.exit_code


def main():
    parsed = parse_args(sys.argv[1:])
    if parsed is None:
        usage()
        sys.exit(ExitCodes.invalid_command)

    operation, verbose = parsed
    sys.exit(run_operation(operation, verbose))


if __name__ == '__main__':
    main()
