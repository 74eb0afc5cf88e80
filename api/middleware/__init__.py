# SPDX-License-Identifier: Apache-2.0

"""
Middleware package for request processing.

This package contains middleware components for authentication, authorization,
and request/response processing in the civic issues API.
"""