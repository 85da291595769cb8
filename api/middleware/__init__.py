# SPDX-License-Identifier: Apache-2.0

"""
Middleware package for request processing.

This package contains error handling and request validation components
for the blood donor listing API.
"""
