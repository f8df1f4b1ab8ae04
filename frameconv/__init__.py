"""Convert raw camera frames to baseline JPEG and BMP; JPEG decoding is not provided."""

__version__ = "0.1.0"
__all__ = ["pixels", "jpeg_core", "encoder", "to_jpg", "to_bmp"]