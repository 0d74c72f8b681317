"""
Model locations, tensor sizes and normalization constants.
"""

VERSION = "0.2.0"

CDN_BASE = f"https://cdn.jsdelivr.net/npm/tinysam@{VERSION}/dist"

DEFAULT_ENCODER_MODEL_PATH = f"{CDN_BASE}/encoder.onnx"
DEFAULT_DECODER_MODEL_PATH = f"{CDN_BASE}/sam.onnx"

# Longest image edge fed to the encoder
ENCODER_INPUT_SIZE = 1024
# Edge of the square "previous mask" input of the decoder
DECODER_MASK_SIZE = 256

# Per-channel RGB normalization the encoder was trained with
PIXEL_MEAN = (123.675, 116.28, 103.53)
PIXEL_STD = (58.395, 57.12, 57.375)

# Tensor names of the encoder/decoder graphs
ENCODER_INPUT_NAME = "input"
PADDING_POINT_LABEL = -1.0
