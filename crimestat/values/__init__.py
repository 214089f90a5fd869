from .value import DecimalPolicy, Value, Variant

__all__ = ["DecimalPolicy", "Value", "Variant"]
