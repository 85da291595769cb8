# SPDX-License-Identifier: Apache-2.0

"""
Domain logic package for the blood donor listing platform.

This package contains pure business logic functions with no side effects.
The submission workflow reaches storage only through collaborators passed in.
"""
