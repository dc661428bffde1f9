"""Validators for user-supplied endpoint URLs."""

from rpc_manager.validators.url_validator import is_valid_endpoint_url, validate_endpoint_url

__all__ = ["is_valid_endpoint_url", "validate_endpoint_url"]
