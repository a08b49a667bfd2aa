"""Sequential batch rendering with progress reporting and live edits."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence

from .config import Settings
from .fonts import FontRegistry
from .logger import get_logger
from .mapping import MappingTable
from .models import BatchItem, BatchProgress, FontAsset, Raster, RenderState
from .rasterizer import TextRasterizer

ProgressCallback = Callable[[BatchProgress], None]


class BatchSupersededError(RuntimeError):
    """Recorded on the assets a batch never reached because a newer batch replaced it."""


class Batch:
    """State of one loaded set of fonts. Replaced wholesale by each new run.

    Each batch owns its fonts. Handles are keyed by asset filename, so two
    files sharing a family id (``a.ttf`` and ``a.otf``) keep their own fonts.
    """

    def __init__(self, assets: Sequence[FontAsset], settings: Optional[Settings] = None) -> None:
        self.assets: List[FontAsset] = list(assets)
        self.states: Dict[str, RenderState] = {}
        self.items: List[BatchItem] = []
        self.progress = BatchProgress(0, len(self.assets), "")
        self.registry = FontRegistry()
        self.rasterizer = TextRasterizer(self.registry, settings)

    @property
    def ready(self) -> bool:
        return self.progress.done and len(self.items) == len(self.assets)

    def asset(self, filename: str) -> FontAsset:
        for asset in self.assets:
            if asset.filename == filename:
                return asset
        raise KeyError(filename)

    def current_texts(self) -> Dict[str, str]:
        return {filename: state.current_text for filename, state in self.states.items()}


class BatchRenderer:
    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings
        self.batch = Batch([], settings)

    @property
    def registry(self) -> FontRegistry:
        return self.batch.registry

    @property
    def rasterizer(self) -> TextRasterizer:
        return self.batch.rasterizer

    def _report(self, batch: Batch, processed: int, label: str, progress: Optional[ProgressCallback]) -> None:
        batch.progress = BatchProgress(processed, len(batch.assets), label)
        get_logger().log_progress(processed, len(batch.assets), label)
        if progress is not None:
            progress(batch.progress)

    async def _render_one(self, batch: Batch, asset: FontAsset, text: str) -> Raster:
        await batch.registry.register_async(asset.family_id, asset.binary, key=asset.filename)
        return await batch.rasterizer.render_async(asset.filename, text)

    async def run_batch(
        self,
        assets: Sequence[FontAsset],
        mapping: MappingTable,
        progress: Optional[ProgressCallback] = None,
    ) -> List[BatchItem]:
        """Render every asset in order; a failing asset never stops the batch.

        Starting another run replaces this one. The replaced run stops at its
        next asset and records :class:`BatchSupersededError` for the rest, so
        its result still has one item per asset.
        """
        logger = get_logger()
        batch = Batch(assets, self.settings)
        self.batch = batch
        logger.log_assets([asset.filename for asset in batch.assets])

        processed = 0
        for asset in batch.assets:
            if self.batch is not batch:
                break
            self._report(batch, processed, f"Processing {asset.filename}...", progress)
            text = mapping.lookup(asset)
            try:
                raster = await self._render_one(batch, asset, text)
            except Exception as exc:
                logger.log_error(exc, f"render {asset.filename}")
                batch.items.append(BatchItem(asset, error=exc))
            else:
                batch.states[asset.filename] = RenderState(text, raster)
                batch.items.append(BatchItem(asset, raster=raster))
                logger.log_render(asset.filename, text, raster.width, raster.height)
            processed += 1

        if self.batch is not batch:
            logger.logger.warning(
                "Batch replaced after %d of %d fonts; dropping the rest", processed, len(batch.assets)
            )
            for asset in batch.assets[processed:]:
                batch.items.append(BatchItem(asset, error=BatchSupersededError(asset.filename)))
            batch.registry.clear()
            return list(batch.items)

        self._report(batch, processed, "Done!", progress)
        failed = sum(1 for item in batch.items if not item.ok)
        logger.log_batch_complete(len(batch.items) - failed, failed)
        return list(batch.items)

    async def _edit(self, batch: Batch, filename: str, new_text: str) -> Raster:
        state = batch.states.get(filename)
        if state is None:
            raise KeyError(filename)
        raster = await batch.rasterizer.render_async(filename, new_text)
        state.current_text = new_text
        state.last_image = raster
        get_logger().logger.debug("Re-rendered %s for edited text %r", filename, new_text)
        return raster

    async def on_edit(self, filename: str, new_text: str) -> Raster:
        """Re-render one asset with edited text. Progress is left untouched."""
        return await self._edit(self.batch, filename, new_text)

    async def apply_mapping(self, mapping: MappingTable) -> Dict[str, Raster]:
        """Push new mapping entries into already rendered assets."""
        batch = self.batch
        updated: Dict[str, Raster] = {}
        for asset in batch.assets:
            text = mapping.get(asset.filename)
            if not text or asset.filename not in batch.states:
                continue
            updated[asset.filename] = await self._edit(batch, asset.filename, text)
        return updated

    def current_texts(self) -> Dict[str, str]:
        return self.batch.current_texts()
