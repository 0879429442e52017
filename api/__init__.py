"""Creator Voucher Issuance API."""

__version__ = "0.1.0"
