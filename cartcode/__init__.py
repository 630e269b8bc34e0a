"""Turn TIC-80 cartridges into scannable barcodes or QR codes and back."""

__version__ = "0.3.0"
