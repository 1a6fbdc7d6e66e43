"""HakuFloat: external address pools and quota-gated address mapping."""

__version__ = "0.1.0"
