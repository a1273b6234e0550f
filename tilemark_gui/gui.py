"""
Main window for Tilemark.
Sidebar holds folders and watermark settings, the main area is the live preview,
the footer runs, pauses and cancels the batch.
"""

import os
import subprocess
import sys
import time
import tkinter.messagebox as messagebox
from pathlib import Path

import customtkinter as ctk

from tilemark.batch import IMAGE_EXTENSIONS, BatchResult, BatchRunner, ProgressEvent, count_images, first_image
from tilemark.errors import WatermarkError
from tilemark.preview import Debouncer, PreviewRenderer
from tilemark.settings import WatermarkSettings, format_color
from tilemark_gui.components.file_selector import ColorSelector, FileSelector, SettingsSlider
from tilemark_gui.components.preview_panel import PreviewPanel
from tilemark_gui.theme import COLORS, RADIUS, SPACING, WINDOW, get_font

IMAGE_FILETYPES = [("Images", " ".join(f"*{ext}" for ext in sorted(IMAGE_EXTENSIONS))), ("All files", "*.*")]

# Longest the window waits for a cancelled batch before closing.
CLOSE_TIMEOUT_S = 5.0


class WatermarkApp(ctk.CTk):
    """Main application window."""

    def __init__(self):
        super().__init__()

        self.title("Tilemark")
        self.geometry(f"{WINDOW['default_width']}x{WINDOW['default_height']}")
        self.minsize(WINDOW['min_width'], WINDOW['min_height'])

        ctk.set_appearance_mode("dark")
        ctk.set_default_color_theme("blue")
        self.configure(fg_color=COLORS["bg_main"])

        self.preview = PreviewRenderer()
        self.debouncer = Debouncer(self.after, self.after_cancel)
        self.runner = BatchRunner(
            on_progress=lambda event: self.after(0, self._on_progress, event),
            on_done=lambda result: self.after(0, self._finish, result),
        )
        self.processing_start_time = 0.0

        self._build_ui()
        self._setup_bindings()

    def _setup_bindings(self):
        self.bind("<F5>", lambda e: self._refresh_preview())
        self.protocol("WM_DELETE_WINDOW", self._on_close)

    def _build_ui(self):
        main = ctk.CTkFrame(self, fg_color="transparent")
        main.pack(fill="both", expand=True, padx=SPACING["md"], pady=SPACING["md"])

        main.columnconfigure(0, weight=0, minsize=320)  # Sidebar
        main.columnconfigure(1, weight=1)                # Preview
        main.rowconfigure(0, weight=1)
        main.rowconfigure(1, weight=0)                   # Footer

        sidebar = self._build_sidebar(main)
        sidebar.grid(row=0, column=0, sticky="nsew", padx=(0, SPACING["md"]))

        self.preview_panel = PreviewPanel(main)
        self.preview_panel.grid(row=0, column=1, sticky="nsew")

        footer = self._build_footer(main)
        footer.grid(row=1, column=0, columnspan=2, sticky="ew", pady=(SPACING["md"], 0))

    def _build_sidebar(self, parent) -> ctk.CTkFrame:
        sidebar = ctk.CTkFrame(parent, fg_color=COLORS["bg_card"], corner_radius=RADIUS["md"])

        scroll = ctk.CTkScrollableFrame(
            sidebar, fg_color="transparent",
            scrollbar_button_color=COLORS["bg_hover"],
            scrollbar_button_hover_color=COLORS["bg_active"]
        )
        scroll.pack(fill="both", expand=True, padx=SPACING["sm"], pady=SPACING["sm"])

        # === FOLDERS ===
        self._add_section_header(scroll, "📁 FOLDERS")

        self.input_selector = FileSelector(scroll, label="Input Folder", is_folder=True, on_change=self._on_input_change)
        self.input_selector.pack(fill="x", pady=(0, 2))

        self.image_count_label = ctk.CTkLabel(
            scroll, text="No folder selected", font=get_font("xs"),
            text_color=COLORS["text_muted"], anchor="w"
        )
        self.image_count_label.pack(fill="x", pady=(0, SPACING["sm"]))

        self.output_selector = FileSelector(scroll, label="Output Folder", is_folder=True)
        self.output_selector.pack(fill="x", pady=(0, SPACING["sm"]))

        self.preview_selector = FileSelector(
            scroll, label="Preview Image", filetypes=IMAGE_FILETYPES, on_change=self._on_preview_change
        )
        self.preview_selector.pack(fill="x", pady=(0, SPACING["md"]))

        # === WATERMARK ===
        defaults = WatermarkSettings()
        self._add_section_header(scroll, "💧 WATERMARK")

        ctk.CTkLabel(
            scroll, text="Text", font=get_font("sm"), text_color=COLORS["text_secondary"], anchor="w"
        ).pack(fill="x")
        self.text_var = ctk.StringVar(value=defaults.text)
        self.text_var.trace_add("write", self._on_setting_change)
        ctk.CTkEntry(
            scroll, textvariable=self.text_var, height=32, corner_radius=RADIUS["sm"],
            fg_color=COLORS["bg_main"], border_color=COLORS["border"], font=get_font("sm")
        ).pack(fill="x", pady=(SPACING["xs"], SPACING["sm"]))

        self.color_selector = ColorSelector(
            scroll, label="Colour", default=format_color(defaults.color), on_change=self._on_setting_change
        )
        self.color_selector.pack(fill="x", pady=(0, SPACING["sm"]))

        slider_specs = [
            ("font_size_slider", "Font size", 8, 200, defaults.font_size, "px"),
            ("rotation_slider", "Rotation", -180, 180, defaults.rotation, "°"),
            ("h_spacing_slider", "Horizontal spacing", 20, 1000, defaults.h_spacing, "px"),
            ("v_spacing_slider", "Vertical spacing", 20, 1000, defaults.v_spacing, "px"),
            ("opacity_slider", "Opacity", 0, 100, defaults.opacity, "%"),
            ("density_slider", "Density", 1, 10, defaults.density, "x"),
        ]
        for attr, label, low, high, default, suffix in slider_specs:
            slider = SettingsSlider(
                scroll, label=label, from_=low, to=high, default=default,
                suffix=suffix, on_change=self._on_setting_change
            )
            slider.pack(fill="x", pady=(0, SPACING["sm"]))
            setattr(self, attr, slider)

        return sidebar

    def _add_section_header(self, parent, text: str):
        ctk.CTkLabel(
            parent, text=text, font=get_font("xs", bold=True),
            text_color=COLORS["primary"], anchor="w"
        ).pack(fill="x", pady=(SPACING["sm"], 4))

    def _build_footer(self, parent) -> ctk.CTkFrame:
        footer = ctk.CTkFrame(parent, fg_color=COLORS["bg_card"], corner_radius=RADIUS["md"], height=56)
        footer.pack_propagate(False)

        status_frame = ctk.CTkFrame(footer, fg_color="transparent")
        status_frame.pack(side="left", fill="both", expand=True, padx=SPACING["md"], pady=SPACING["sm"])

        self.status_label = ctk.CTkLabel(
            status_frame, text="Ready", font=get_font("xs"),
            text_color=COLORS["text_secondary"], anchor="w"
        )
        self.status_label.pack(fill="x")

        self.progress_bar = ctk.CTkProgressBar(
            status_frame, height=6, corner_radius=3,
            fg_color=COLORS["bg_hover"], progress_color=COLORS["primary"]
        )
        self.progress_bar.pack(fill="x", pady=(4, 0))
        self.progress_bar.set(0)

        btn_frame = ctk.CTkFrame(footer, fg_color="transparent")
        btn_frame.pack(side="right", padx=SPACING["md"], pady=SPACING["sm"])

        self.run_btn = ctk.CTkButton(
            btn_frame, text="🚀 Run", width=100, height=32,
            corner_radius=RADIUS["sm"], fg_color=COLORS["primary"],
            hover_color=COLORS["primary_hover"], font=get_font("sm", bold=True),
            command=self._start_processing
        )
        self.run_btn.pack(side="right")

        self.cancel_btn = ctk.CTkButton(
            btn_frame, text="✖ Cancel", width=90, height=32, state="disabled",
            corner_radius=RADIUS["sm"], fg_color=COLORS["bg_hover"],
            hover_color=COLORS["error"], font=get_font("sm"),
            command=self._cancel_processing
        )
        self.cancel_btn.pack(side="right", padx=(0, SPACING["sm"]))

        self.pause_btn = ctk.CTkButton(
            btn_frame, text="⏸ Pause", width=90, height=32, state="disabled",
            corner_radius=RADIUS["sm"], fg_color=COLORS["secondary"],
            hover_color=COLORS["secondary_hover"], font=get_font("sm"),
            command=self._toggle_pause
        )
        self.pause_btn.pack(side="right", padx=(0, SPACING["sm"]))

        return footer

    # ===== SETTINGS & PREVIEW =====

    def _collect_settings(self) -> WatermarkSettings:
        return WatermarkSettings.from_mapping({
            "text": self.text_var.get(),
            "font_size": self.font_size_slider.get(),
            "color": self.color_selector.get(),
            "rotation": self.rotation_slider.get(),
            "h_spacing": self.h_spacing_slider.get(),
            "v_spacing": self.v_spacing_slider.get(),
            "opacity": self.opacity_slider.get(),
            "density": self.density_slider.get(),
        })

    def _on_input_change(self, path: str):
        if not path or not Path(path).is_dir():
            self.image_count_label.configure(text="No folder selected")
            return
        count = count_images(Path(path))
        self.image_count_label.configure(text=f"Found: {count} image(s)")
        if count and not self.preview.loaded:
            first = first_image(Path(path))
            if first:
                self.preview_selector.set(str(first))

    def _on_preview_change(self, path: str):
        if not path or not Path(path).is_file():
            return
        try:
            width, height = self.preview.load(Path(path))
        except WatermarkError as e:
            self.preview.clear()
            self.preview_panel.show_placeholder(f"Error: {e}")
            return
        self.status_label.configure(text=f"Preview: {Path(path).name} at {width}×{height}")
        self._refresh_preview()

    def _on_setting_change(self, *args):
        self.debouncer.trigger(self._refresh_preview)

    def _refresh_preview(self):
        if not self.preview.loaded:
            self.preview_panel.show_placeholder("Choose a preview image or an input folder")
            return
        try:
            settings = self._collect_settings()
            image = self.preview.render(settings)
        except WatermarkError as e:
            self.status_label.configure(text=f"⚠️ {e}")
            return
        layout = self.preview.layout(settings)
        info = f"Size: {image.width}×{image.height} | step {layout.h_step}×{layout.v_step}px | {layout.count} tiles"
        self.preview_panel.show_image(image, info)

    # ===== PROCESSING =====

    def _start_processing(self):
        if self.runner.running:
            return

        inp = self.input_selector.get()
        out = self.output_selector.get()
        if not inp or not Path(inp).is_dir():
            self.status_label.configure(text="⚠️ Select input folder")
            return
        if not out:
            self.status_label.configure(text="⚠️ Select output folder")
            return
        if Path(inp).resolve() == Path(out).resolve():
            self.status_label.configure(text="⚠️ Input and output folders must differ")
            return

        try:
            settings = self._collect_settings()
            self.runner.start(Path(inp), Path(out), settings)
        except WatermarkError as e:
            self.status_label.configure(text=f"⚠️ {e}")
            return

        self.processing_start_time = time.time()
        self.run_btn.configure(state="disabled", text="⏳...")
        self.pause_btn.configure(state="normal", text="⏸ Pause")
        self.cancel_btn.configure(state="normal")
        self.progress_bar.set(0)
        self.status_label.configure(text="Starting...")

    def _toggle_pause(self):
        if not self.runner.running:
            return
        if self.runner.control.paused:
            self.runner.resume()
            self.pause_btn.configure(text="⏸ Pause")
            self.status_label.configure(text="Resumed")
        else:
            self.runner.pause()
            self.pause_btn.configure(text="▶ Resume")
            self.status_label.configure(text="Paused after the current image")

    def _cancel_processing(self):
        if self.runner.running:
            self.runner.cancel()
            self.status_label.configure(text="Cancelling after the current image...")

    def _on_progress(self, event: ProgressEvent):
        self.progress_bar.set(event.fraction)
        mark = "" if event.ok else " ❌"
        self.status_label.configure(
            text=f"{int(event.fraction * 100)}% · {event.processed}/{event.total} · {event.filename}{mark}"
        )

    def _finish(self, result: BatchResult):
        self.run_btn.configure(state="normal", text="🚀 Run")
        self.pause_btn.configure(state="disabled", text="⏸ Pause")
        self.cancel_btn.configure(state="disabled")

        elapsed = time.time() - self.processing_start_time
        time_str = f"{int(elapsed * 1000)}ms" if elapsed < 1 else f"{elapsed:.1f}s"

        if not result.success:
            self.progress_bar.set(0)
            self.status_label.configure(text=f"❌ {result.message}")
            messagebox.showerror("Tilemark", f"Batch failed:\n\n{result.message}")
            return

        self.progress_bar.set(1 if not result.cancelled else self.progress_bar.get())
        verb = "Cancelled" if result.cancelled else "Done"
        self.status_label.configure(text=f"✅ {verb}: {result.processed}/{result.total} in {time_str}")

        lines = [f"Processed {result.processed}/{result.total} image(s) in {time_str}."]
        if result.cancelled:
            lines.append("The batch was cancelled.")
        if result.errors:
            lines.append("")
            lines.append(f"{result.failed} image(s) failed:")
            lines.extend(f"• {name}: {error}" for name, error in result.errors[:10])
            if result.failed > 10:
                lines.append(f"… and {result.failed - 10} more")
        lines.append("")
        lines.append("Open the output folder?")
        if messagebox.askyesno("Tilemark", "\n".join(lines)):
            self._open_output_folder()

    def _open_output_folder(self):
        folder = self.output_selector.get()
        if not folder or not Path(folder).is_dir():
            return
        if os.name == "nt":
            os.startfile(folder)
        elif sys.platform == "darwin":
            subprocess.run(["open", folder], check=False)
        else:
            subprocess.run(["xdg-open", folder], check=False)

    def _on_close(self):
        self.debouncer.cancel()
        if self.runner.running:
            # The file in flight finishes first; its callbacks are dropped.
            self.runner.close(timeout=CLOSE_TIMEOUT_S)
        self.destroy()


def main():
    """Entry point."""
    app = WatermarkApp()
    app.mainloop()


if __name__ == "__main__":
    main()
