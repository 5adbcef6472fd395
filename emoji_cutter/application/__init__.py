"""Application layer - use cases and orchestration."""

from .services.ai_segmentation import AISegmentationAdapter
from .services.splitting import EmojiSplitService
from .services.selection_store import SelectionStore

__all__ = ['AISegmentationAdapter', 'EmojiSplitService', 'SelectionStore']
