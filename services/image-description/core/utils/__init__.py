"""
Core utility modules for Lambda function.

This package contains Lambda-specific utilities for:
- Service configuration
- AWS client management
- HTTP response handling
"""
