"""Application services - orchestrate use cases."""

from .ai_segmentation import AISegmentationAdapter, CancellationToken
from .background_removal import BackgroundRemovalResult, BackgroundRemovalService
from .extraction import ExtractionService, ThumbnailCache
from .selection_store import SelectionStore
from .splitting import EmojiSplitService, SplitOutcome

__all__ = [
    'AISegmentationAdapter',
    'CancellationToken',
    'BackgroundRemovalService',
    'BackgroundRemovalResult',
    'ExtractionService',
    'ThumbnailCache',
    'SelectionStore',
    'EmojiSplitService',
    'SplitOutcome',
]
