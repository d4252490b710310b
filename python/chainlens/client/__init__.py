"""Explorer client."""

from chainlens.client.explorer import BlockView, ChainExplorer, ExtrinsicView

__all__ = ["ChainExplorer", "BlockView", "ExtrinsicView"]
