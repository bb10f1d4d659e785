# Copyright 2025 Roger Cibrian
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

"""Deployment policies for CMPD.

This module decides where applications are deployed after their content
has been distributed.

Public API:

- resolve_target_collections: Collections for a new or superseding app
- dedupe_collections: Case-insensitive, order-preserving de-duplication

"""

from .targets import dedupe_collections, resolve_target_collections

__all__ = ["resolve_target_collections", "dedupe_collections"]
