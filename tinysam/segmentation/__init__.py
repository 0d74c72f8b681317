"""
Numeric bridges between images, model tensors and masks.

Responsibilities:
- Image to encoder input tensor
- Clicks to decoder input tensors
- Decoder output to RGBA mask image
"""

from .preprocess import preprocess_image
from .prompt_encoder import build_decoder_feeds, scale_clicks
from .mask_processor import mask_to_image, decoder_output_to_image
