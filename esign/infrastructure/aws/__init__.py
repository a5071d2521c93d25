"""AWS helpers"""
from .errors import is_aws_retryable, is_conditional_check_failed, map_aws_error

__all__ = ["is_aws_retryable", "is_conditional_check_failed", "map_aws_error"]
