"""
S3 Proxy - serve objects from S3-compatible storage over plain HTTP.

This package contains the complete application:
- core: Framework-agnostic routing and relay logic
- infrastructure: Object storage integration
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
