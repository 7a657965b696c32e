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

from .ExtensionErrors import PersistenceFailure


class SequenceNumberGate(object):
    """
    Decides whether an enable invocation should run, based on the sequence
    number watermark persisted in the mrseq file.

    A candidate lower than or equal to the watermark is skipped. A missing
    watermark file reads as -1, so any candidate >= 0 proceeds. The watermark
    is read from disk on every call and only overwritten when proceeding.
    """
    missing_watermark = -1

    def __init__(self, context):
        self.logger = context.logger
        self.watermark_path = context.environment.most_recent_sequence_path

    def get_watermark(self):
        if not os.path.isfile(self.watermark_path):
            return SequenceNumberGate.missing_watermark
        try:
            with open(self.watermark_path, 'r') as f:
                contents = f.read().strip()
        except (IOError, OSError) as e:
            raise PersistenceFailure('cannot read {0}: {1}'.format(self.watermark_path, e))
        try:
            return int(contents)
        except ValueError:
            raise PersistenceFailure('corrupt sequence number "{0}" in {1}'.format(contents, self.watermark_path))

    def set_watermark(self, sequence_number):
        parent = os.path.dirname(self.watermark_path)
        try:
            if not os.path.isdir(parent):
                os.makedirs(parent)
            with open(self.watermark_path, 'w') as f:
                f.write(str(sequence_number))
        except (IOError, OSError) as e:
            raise PersistenceFailure('cannot write {0}: {1}'.format(self.watermark_path, e))

    def check_and_save(self, candidate):
        watermark = self.get_watermark()
        should_skip = candidate <= watermark
        self.logger.log('sequence number check',
                        candidate=candidate,
                        watermark=watermark,
                        skip=should_skip)
        if not should_skip:
            self.set_watermark(candidate)
        return should_skip
