"""Protocol layer: numeric codec and received frame splitting."""

from .codec import bytes_to_float, format_random_value, to_hex_string
from .framing import Frame, split_frame
