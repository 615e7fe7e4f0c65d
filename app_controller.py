"""
Application controller for the worksheet word cloud.
Owns the upload session and runs the image -> text -> keywords pipeline.
"""

import io
import logging
from typing import Callable, List, Optional, Tuple

from PIL import Image

from config import GUI_CONFIG
from errors import AnalysisError, InputError
from models import ImageFile, LayoutConfig, PlacedWord, SessionState, UploadSession
from pipeline import StageResult, run_keyword_extraction, run_layout, run_text_extraction
from sources import KeywordSource, TextExtractionSource
from word_cloud_layout import WordCloudLayoutEngine
from word_cloud_renderer import WordCloudRenderer

logger = logging.getLogger(__name__)

Task = Callable[[], StageResult]
Callback = Callable[[StageResult], None]
Scheduler = Callable[[Task, Callback], None]


def run_inline(task: Task, on_done: Callback) -> None:
    """Scheduler that runs the task right away on the calling thread."""
    on_done(task())


def make_preview(image: ImageFile, size: Tuple[int, int] = GUI_CONFIG["preview_size"]):
    """Thumbnail of the image, or None if Pillow can't decode it."""
    try:
        preview = Image.open(io.BytesIO(image.data))
        preview.thumbnail(size)
        return preview
    except OSError as e:
        logger.warning("Could not build a preview for %s: %s", image.name, e)
        return None


class WordCloudController:
    """Drives an upload session through extraction, keyword ranking and layout."""

    EXTRACTING_STATUS = "Extracting text from image..."
    KEYWORDS_STATUS = "Identifying keywords..."

    def __init__(
        self,
        text_source: TextExtractionSource,
        keyword_source: KeywordSource,
        layout_engine: Optional[WordCloudLayoutEngine] = None,
        renderer: Optional[WordCloudRenderer] = None,
        scheduler: Scheduler = run_inline,
    ):
        """
        Initialize the controller.

        Args:
            text_source: Reads text from worksheet images
            keyword_source: Ranks keywords in the extracted text
            layout_engine: Places keywords on a canvas
            renderer: Draws placements onto images
            scheduler: Runs a stage and hands its result back; the GUI uses a
                background thread, tests run stages inline
        """
        self.text_source = text_source
        self.keyword_source = keyword_source
        self.layout_engine = layout_engine or WordCloudLayoutEngine()
        self.renderer = renderer or WordCloudRenderer()
        self.scheduler = scheduler
        self.session = UploadSession()
        self._listeners: List[Callable[[UploadSession], None]] = []

    def add_listener(self, listener: Callable[[UploadSession], None]) -> None:
        """Register a callback run after every session change."""
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self.session)

    def select_file(self, image: ImageFile) -> None:
        """Start a new session for the image, dropping any work still in flight."""
        self.session = UploadSession(
            image=image,
            preview=make_preview(image),
            state=SessionState.FILE_SELECTED,
            generation=self.session.generation + 1,
        )
        logger.info("Selected %s (%s)", image.name, image.mime_type)
        self._notify()

    def open_file(self, path: str) -> bool:
        """Read an image from disk and select it."""
        try:
            image = ImageFile.from_path(path)
        except OSError:
            logger.exception("Failed to read %s", path)
            self._fail(InputError("Failed to read the file."))
            return False
        self.select_file(image)
        return True

    def generate(self) -> bool:
        """
        Start the pipeline for the selected image.

        Returns:
            True if the pipeline was started, False if it was already running
            or there was nothing to run it on
        """
        if self.session.is_loading:
            logger.debug("Generation already in progress, ignoring request")
            return False

        if self.session.image is None:
            self._fail(InputError())
            return False

        token = self.session.generation
        image = self.session.image
        self.session.state = SessionState.EXTRACTING
        self.session.status = self.EXTRACTING_STATUS
        self.session.error = None
        self.session.words = ()
        self._notify()

        self.scheduler(
            lambda: run_text_extraction(self.text_source, image),
            lambda result: self._on_text_extracted(token, result),
        )
        return True

    def reset(self) -> None:
        """Discard the image, preview, words and error."""
        self.session = UploadSession(generation=self.session.generation + 1)
        logger.info("Session reset")
        self._notify()

    def _is_current(self, token: int) -> bool:
        if token != self.session.generation:
            logger.info("Discarding result for an abandoned session")
            return False
        return True

    def _on_text_extracted(self, token: int, result: StageResult) -> None:
        if not self._is_current(token):
            return
        if not result.ok:
            self._fail(result.error)
            return

        text = result.value
        self.session.state = SessionState.KEYWORD_EXTRACTION
        self.session.status = self.KEYWORDS_STATUS
        self._notify()

        self.scheduler(
            lambda: run_keyword_extraction(self.keyword_source, text),
            lambda keywords: self._on_keywords_extracted(token, keywords),
        )

    def _on_keywords_extracted(self, token: int, result: StageResult) -> None:
        if not self._is_current(token):
            return
        if not result.ok:
            self._fail(result.error)
            return

        self.session.words = result.value
        self.session.state = SessionState.READY
        self.session.status = ""
        logger.info("Found %d keywords", len(self.session.words))
        self._notify()

    def _fail(self, error: AnalysisError) -> None:
        self.session.state = SessionState.ERROR
        self.session.status = ""
        self.session.error = error.user_message
        logger.error(error.user_message)
        self._notify()

    def layout(self, config: LayoutConfig) -> List[PlacedWord]:
        """Place the session's words on a canvas."""
        return run_layout(self.layout_engine, self.session.words, config).value

    def render(self, config: LayoutConfig):
        """Place and draw the session's words.

        Returns:
            Tuple of (image, placed words)
        """
        placed = self.layout(config)
        image = self.renderer.render(placed, config.canvas_width, config.canvas_height)
        return image, placed
