"""
Worksheet Word Cloud GUI
Pick a worksheet image, send it through Gemini and show the resulting word cloud.
"""

import logging
import threading
import tkinter as tk
from tkinter import filedialog, messagebox, ttk
from typing import Callable, List, Optional, Tuple

from PIL import ImageTk

from app_controller import WordCloudController
from config import GUI_CONFIG
from models import LayoutConfig, SessionState, UploadSession
from word_cloud_renderer import WordCloudRenderer

logger = logging.getLogger(__name__)


class ProgressHandler:
    """Handles progress indication and background tasks."""

    def __init__(self, progress_var: tk.StringVar, progress_bar: ttk.Progressbar):
        self.progress_var = progress_var
        self.progress_bar = progress_bar
        self.is_active = False
        self._root_after: Optional[Callable] = None

    def start(self, message: str = "Working..."):
        """Start progress indication."""
        self.progress_var.set(message)
        self.progress_bar.pack(side=tk.RIGHT, padx=(10, 0))
        self.progress_bar.start()
        self.is_active = True

    def stop(self, message: str = "Ready"):
        """Stop progress indication."""
        self.progress_bar.stop()
        self.progress_bar.pack_forget()
        self.progress_var.set(message)
        self.is_active = False

    def run_background_task(
        self,
        task_func: Callable,
        on_success: Callable,
        on_error: Callable,
        start_message: str = "Working...",
    ):
        """Run a task in background, reporting back on the Tk main loop."""

        def wrapper():
            try:
                result = task_func()
            except Exception as e:
                logger.exception("Background task failed")
                self._root_after(0, lambda error=e: self._finish(on_error, error))
            else:
                self._root_after(0, lambda: self._finish(on_success, result))

        self.start(start_message)
        threading.Thread(target=wrapper, daemon=True).start()

    def _finish(self, callback: Callable, value):
        # Stop first so a follow-up task can restart the indicator
        self.stop()
        callback(value)

    def set_root_after(self, root_after_func):
        """Set the root.after function for UI updates."""
        self._root_after = root_after_func


class DialogHelper:
    """Helper for creating consistent dialogs and message boxes."""

    @staticmethod
    def show_error(title: str, message: str):
        messagebox.showerror(title, message)

    @staticmethod
    def open_file_dialog(title: str, filetypes: List[Tuple[str, str]]) -> Optional[str]:
        return filedialog.askopenfilename(title=title, filetypes=filetypes)

    @staticmethod
    def save_file_dialog(
        title: str, filetypes: List[Tuple[str, str]], defaultextension: str
    ) -> Optional[str]:
        return filedialog.asksaveasfilename(
            title=title, filetypes=filetypes, defaultextension=defaultextension
        )


class WordCloudGUI:
    """Main window: image preview on top, word cloud below."""

    def __init__(self, root: tk.Tk, controller_factory: Callable[..., WordCloudController]):
        """
        Args:
            root: Tk root window
            controller_factory: Called with scheduler=... to build the controller
        """
        self.root = root
        self.root.title(GUI_CONFIG["title"])
        self.root.geometry(GUI_CONFIG["geometry"])

        self.progress_handler: Optional[ProgressHandler] = None
        self.preview_photo = None
        self.cloud_photo = None
        self.cloud_image = None

        self._create_menu()
        self._create_main_interface()
        self.progress_handler.set_root_after(self.root.after)

        self.controller = controller_factory(scheduler=self._schedule)
        self.controller.add_listener(self._on_session_changed)
        self._on_session_changed(self.controller.session)

    def _schedule(self, task, on_done):
        """Run a pipeline stage on a worker thread."""
        self.progress_handler.run_background_task(
            task, on_done, self._on_unexpected_error, self.controller.session.status
        )

    def _create_menu(self):
        """Create the menu bar."""
        menubar = tk.Menu(self.root)
        self.root.config(menu=menubar)

        file_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="File", menu=file_menu)
        file_menu.add_command(label="Open Image", command=self._open_image)
        file_menu.add_command(label="Save Word Cloud", command=self._save_cloud)
        file_menu.add_separator()
        file_menu.add_command(label="Exit", command=self.root.quit)

    def _create_main_interface(self):
        """Create buttons, status line, preview and word cloud canvases."""
        control_frame = ttk.Frame(self.root)
        control_frame.pack(fill=tk.X, padx=10, pady=5)

        self.open_button = ttk.Button(
            control_frame, text="Open Image", command=self._open_image
        )
        self.open_button.pack(side=tk.LEFT)
        self.generate_button = ttk.Button(
            control_frame, text="Generate Word Cloud", command=self._generate
        )
        self.generate_button.pack(side=tk.LEFT, padx=(5, 0))
        self.reset_button = ttk.Button(control_frame, text="Reset", command=self._reset)
        self.reset_button.pack(side=tk.LEFT, padx=(5, 0))

        progress_var = tk.StringVar(value="Ready")
        progress_bar = ttk.Progressbar(control_frame, mode="indeterminate")
        ttk.Label(control_frame, textvariable=progress_var).pack(side=tk.RIGHT)
        self.progress_handler = ProgressHandler(progress_var, progress_bar)

        self.file_var = tk.StringVar(value="No image selected")
        ttk.Label(self.root, textvariable=self.file_var, foreground="blue").pack(
            anchor=tk.W, padx=10
        )

        self.error_var = tk.StringVar(value="")
        ttk.Label(self.root, textvariable=self.error_var, foreground="red").pack(
            anchor=tk.W, padx=10
        )

        preview_width, preview_height = GUI_CONFIG["preview_size"]
        self.preview_canvas = tk.Canvas(
            self.root, width=preview_width, height=preview_height, bg="#f3f4f6"
        )
        self.preview_canvas.pack(pady=5)

        self.cloud_canvas = tk.Canvas(self.root, bg="white", height=400)
        self.cloud_canvas.pack(fill=tk.BOTH, expand=True, padx=10, pady=5)

    def _open_image(self):
        if file_path := DialogHelper.open_file_dialog(
            title="Select worksheet image", filetypes=GUI_CONFIG["image_filetypes"]
        ):
            self.controller.open_file(file_path)

    def _generate(self):
        self.controller.generate()

    def _reset(self):
        self.controller.reset()

    def _save_cloud(self):
        if self.cloud_image is None:
            DialogHelper.show_error("No Word Cloud", "Generate a word cloud first.")
            return
        if output_path := DialogHelper.save_file_dialog(
            title="Save word cloud",
            filetypes=[("PNG files", "*.png")],
            defaultextension=".png",
        ):
            try:
                WordCloudRenderer.save(self.cloud_image, output_path)
            except OSError as e:
                DialogHelper.show_error("Save Failed", str(e))

    def _on_unexpected_error(self, error: Exception):
        DialogHelper.show_error("Error", f"An unexpected error occurred: {error}")

    def _on_session_changed(self, session: UploadSession):
        """Refresh every widget from the session."""
        loading = session.is_loading
        button_state = tk.DISABLED if loading else tk.NORMAL
        self.open_button.config(state=button_state)
        self.reset_button.config(state=button_state)
        self.generate_button.config(
            state=tk.DISABLED if loading or session.image is None else tk.NORMAL,
            text="Generating..." if loading else "Generate Word Cloud",
        )

        self.file_var.set(session.image.name if session.image else "No image selected")
        self.error_var.set(f"Error: {session.error}" if session.error else "")
        if loading:
            self.progress_handler.progress_var.set(session.status)

        self._show_preview(session)
        self._show_cloud(session)

    def _show_preview(self, session: UploadSession):
        self.preview_canvas.delete("all")
        self.preview_photo = None
        if session.preview is None:
            return
        self.preview_photo = ImageTk.PhotoImage(session.preview)
        self.preview_canvas.create_image(
            int(self.preview_canvas["width"]) // 2,
            int(self.preview_canvas["height"]) // 2,
            anchor=tk.CENTER,
            image=self.preview_photo,
        )

    def _show_cloud(self, session: UploadSession):
        self.cloud_canvas.delete("all")
        self.cloud_photo = None
        self.cloud_image = None
        if session.state != SessionState.READY or not session.words:
            return

        self.cloud_canvas.update_idletasks()
        width = max(200, self.cloud_canvas.winfo_width())
        config = LayoutConfig.for_viewport(width)

        self.cloud_image, placed = self.controller.render(config)
        self.cloud_photo = ImageTk.PhotoImage(self.cloud_image)
        self.cloud_canvas.create_image(
            width // 2, config.canvas_height // 2, anchor=tk.CENTER, image=self.cloud_photo
        )
        self.progress_handler.progress_var.set(
            f"Placed {len(placed)} of {len(session.words)} keywords"
        )


def run_gui(controller_factory: Callable[..., WordCloudController]):
    """Create the root window and run the Tk main loop."""
    root = tk.Tk()
    WordCloudGUI(root, controller_factory)
    root.mainloop()
