# routeviz/services/progress.py
from typing import Optional

from routeviz.core.logger import logger
from routeviz.models.routing import ProgressView


class Progress:
    """
    Progress sink shared by the graph loader and the spatial index build.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.message = ""
        self.completed = ""
        self.error = ""
        self.tree_ready = False

    def set_message(self, message: str) -> None:
        self.message = message
        logger.debug(f"Progress: {message}")

    def set_completed(self, done: int, total: int) -> None:
        percent = 100 if total <= 0 else round(100 * done / total)
        self.completed = f"{percent}%"

    def set_error(self, message: str, exc: Optional[BaseException] = None) -> None:
        self.error = message
        if exc is not None:
            logger.error(f"{message}: {exc}")
        else:
            logger.error(message)

    def to_view(self) -> ProgressView:
        return ProgressView(
            message=self.message,
            completed=self.completed,
            error=self.error,
            tree_ready=self.tree_ready,
        )
