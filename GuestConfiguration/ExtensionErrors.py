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

# Exceptions
# Everything raised by the handler derives from GuestConfigurationException.
# Only handle.main decides the exit code and the status file content.


class GuestConfigurationException(Exception):
    """
    Base exception class for all handler failures.
    """
    error_kind = 'GenericFailure'

    def __init__(self, message='', details=''):
        super(GuestConfigurationException, self).__init__(message)
        self.message = message
        self.details = details

    def __str__(self):
        return self.message

    def wrap(self, context):
        """
        Return an exception of the same type with context prefixed to the message.
        Use as: raise e.wrap('failed to ...') from e
        """
        return type(self)('{0}: {1}'.format(context, self.message), self.details)

    def get_error_message(self):
        return '{0}: {1}'.format(self.error_kind, self.message)

    def get_status_message(self):
        """
        Message for the status file: the error followed by details such as
        the script output tail. Details never go to telemetry.
        """
        return self.message + self.details


class ConfigurationInvalid(GuestConfigurationException):
    """
    Settings failed schema or logical validation.
    """
    error_kind = 'ConfigurationInvalid'


class MalformedName(GuestConfigurationException):
    """
    A package or extension name did not match the expected version pattern.
    """
    error_kind = 'MalformedName'


class NoCandidates(GuestConfigurationException):
    error_kind = 'NoCandidates'


class PersistenceFailure(GuestConfigurationException):
    """
    The sequence number watermark could not be read or written.
    """
    error_kind = 'PersistenceFailure'


class ExtractionFailure(GuestConfigurationException):
    error_kind = 'ExtractionFailure'


class ScriptFailure(GuestConfigurationException):
    """
    A lifecycle script exited with a non-zero code or could not be launched.
    """
    error_kind = 'ScriptFailure'


class HandlerEnvironmentInvalid(GuestConfigurationException):
    error_kind = 'HandlerEnvironmentInvalid'


class AgentHealthCheckFailure(ScriptFailure):
    """
    enable.sh failed on an already unpacked agent.
    """
    error_kind = 'AgentHealthCheckFailure'
