"""Raw address detection."""

from .address import AddressDetection, AddressDetector

__all__ = [
    "AddressDetection",
    "AddressDetector",
]
