"""
Core proxy logic.

This module is framework-agnostic - it doesn't import FastAPI, boto3,
or any infrastructure concerns. Routing and relaying can be tested
in isolation with in-memory backends.
"""
