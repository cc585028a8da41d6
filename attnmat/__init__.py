"""Integer attention products (Q x K^T) x V computed with thread or process workers, and multi-head sums."""

__version__ = "0.1.0"