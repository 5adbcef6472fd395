"""Domain services - pure pixel and geometry algorithms."""

from .background_removal import has_transparent_pixels, remove_background_flood_fill
from .box_merging import merge_nearby_boxes, sort_reading_order
from .component_labeling import detect_emojis, detect_grid, label_connected_regions, split_by_grid
from .history import SelectionHistory
from .pixel_classifier import create_binary_mask, detect_background_color
from .region_extraction import crop_polygon, crop_rectangle, extract_from_selection

__all__ = [
    'detect_background_color',
    'create_binary_mask',
    'label_connected_regions',
    'merge_nearby_boxes',
    'sort_reading_order',
    'detect_emojis',
    'detect_grid',
    'split_by_grid',
    'SelectionHistory',
    'crop_rectangle',
    'crop_polygon',
    'extract_from_selection',
    'remove_background_flood_fill',
    'has_transparent_pixels',
]
