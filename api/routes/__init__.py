# SPDX-License-Identifier: Apache-2.0

"""
HTTP route blueprints for the blood donor listing API.
"""
