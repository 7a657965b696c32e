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


from transitions import Machine, State


class LifecycleStateMachine(object):
    """
    Tracks the progress of one handler invocation:
    init -> gated -> settings_loaded -> payload_resolved -> unpacked -> scripts_run -> reported -> terminal
    finish moves any state to terminal once the verb has nothing left to do,
    fail does the same after an error.
    """
    states = [
        State(name='init'),
        State(name='gated'),
        State(name='settings_loaded'),
        State(name='payload_resolved'),
        State(name='unpacked'),
        State(name='scripts_run'),
        State(name='reported'),
        State(name='terminal')
    ]

    transitions = [
        {
            'trigger': 'gate',
            'source': 'init',
            'dest': 'gated'
        },
        {
            'trigger': 'load_settings',
            'source': 'gated',
            'dest': 'settings_loaded'
        },
        {
            'trigger': 'resolve_payload',
            'source': 'settings_loaded',
            'dest': 'payload_resolved'
        },
        {
            'trigger': 'unpack',
            'source': 'payload_resolved',
            'dest': 'unpacked'
        },
        {
            'trigger': 'run_scripts',
            'source': 'unpacked',
            'dest': 'scripts_run'
        },
        {
            'trigger': 'report',
            'source': 'scripts_run',
            'dest': 'reported'
        },
        {
            'trigger': 'finish',
            'source': '*',
            'dest': 'terminal',
            'conditions': 'is_running'
        },
        {
            'trigger': 'fail',
            'source': '*',
            'dest': 'terminal'
        }
    ]

    def __init__(self, logger, operation):
        super(LifecycleStateMachine, self).__init__()

        self.logger = logger
        self.operation = operation

        self.state_machine = Machine(model=self,
                                     states=LifecycleStateMachine.states,
                                     transitions=LifecycleStateMachine.transitions,
                                     initial='init',
                                     after_state_change='log_machine_state')

    def is_running(self):
        return self.state != 'terminal'

    def log_machine_state(self):
        self.logger.log_if_verbose("======= MACHINE STATE: {0} =======".format(self.state),
                                   operation=self.operation)
