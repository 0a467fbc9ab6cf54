"""AuthShops API: accounts, globally unique shops and cookie sessions."""

__version__ = "0.1.0"
