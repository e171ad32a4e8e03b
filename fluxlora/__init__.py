"""
FLUX LoRA training and generation backend
"""
__version__ = "1.0.0"
