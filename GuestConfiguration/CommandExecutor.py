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
import shlex
import time
from collections import namedtuple
from subprocess import Popen

from .Common import CommonVariables

CommandExecutionResult = namedtuple('CommandExecutionResult',
                                    [
                                        'succeeded',
                                        'exit_code',
                                        'duration',
                                        'stdout_path',
                                        'stderr_path'
                                    ])


def get_log_paths(log_dir):
    return (os.path.join(log_dir, CommonVariables.stdout_file_name),
            os.path.join(log_dir, CommonVariables.stderr_file_name))


class CommandExecutor(object):
    """
    Runs lifecycle scripts in a working directory. The child process writes
    its stdout and stderr straight into files in that directory, appending
    to what earlier commands wrote.
    """
    def __init__(self, logger):
        self.logger = logger

    def Execute(self, command_to_execute, working_dir, args=None):
        command = shlex.split(command_to_execute)
        if args:
            command.extend(args)

        stdout_path, stderr_path = get_log_paths(working_dir)
        self.logger.event('executing command', command=' '.join(command), dir=working_dir)

        begin = time.time()
        return_code = None
        try:
            with open(stdout_path, 'ab') as stdout_file, open(stderr_path, 'ab') as stderr_file:
                proc = Popen(command, cwd=working_dir, stdout=stdout_file, stderr=stderr_file, close_fds=True)
                return_code = proc.wait()
        except (IOError, OSError) as e:
            self.logger.error('process creation failed', command=command_to_execute, error=e)
            return_code = -1
        duration = time.time() - begin

        succeeded = return_code == 0
        self.logger.event('command executed',
                          command=command_to_execute,
                          isSuccess=succeeded,
                          exitCode=return_code,
                          elapsed='{0:.3f}s'.format(duration))
        return CommandExecutionResult(succeeded=succeeded,
                                      exit_code=return_code,
                                      duration=duration,
                                      stdout_path=stdout_path,
                                      stderr_path=stderr_path)
