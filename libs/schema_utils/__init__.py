from .validate import MalformedMessage, parse_message, validate_or_raise

__all__ = ["MalformedMessage", "parse_message", "validate_or_raise"]
