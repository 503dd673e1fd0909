"""XCA decompression and parsers for GPT, PE/COFF headers, UEFI device paths and keystrokes."""

__version__ = "0.1.0"