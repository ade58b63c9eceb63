"""コア機能"""

from authbackend.core.cancellation import run_cancellable

__all__ = ["run_cancellable"]
