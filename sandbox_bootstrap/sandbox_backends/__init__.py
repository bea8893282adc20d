"""Remote sandbox providers.

This package contains:
- The provider protocol and the value types it returns
- An E2B code-interpreter implementation
- A factory selecting the provider for a config
"""
