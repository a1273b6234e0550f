"""
Preview panel: shows the watermarked preview image with fit and zoom controls.
"""

import customtkinter as ctk
import tkinter as tk
from PIL import Image, ImageTk
from typing import Optional

from tilemark_gui.theme import COLORS, RADIUS, SPACING, get_font


class PreviewPanel(ctk.CTkFrame):
    """Scrollable, zoomable display of the current preview render."""

    def __init__(self, master, **kwargs):
        super().__init__(
            master,
            fg_color=COLORS["bg_card"],
            corner_radius=RADIUS["lg"],
            border_width=1,
            border_color=COLORS["border"],
            **kwargs
        )

        self.current_image: Optional[Image.Image] = None
        self.photo_image: Optional[ImageTk.PhotoImage] = None
        self.zoom_level = 0.0  # 0 = fit to window
        self.display_scale = 1.0

        self._build_ui()

    def _build_ui(self):
        header = ctk.CTkFrame(self, fg_color="transparent", height=36)
        header.pack(fill="x", padx=SPACING["sm"], pady=(SPACING["sm"], 4))
        header.pack_propagate(False)

        ctk.CTkLabel(
            header, text="🖼️ Preview", font=get_font("base", bold=True),
            text_color=COLORS["text_primary"]
        ).pack(side="left")

        zoom_frame = ctk.CTkFrame(header, fg_color="transparent")
        zoom_frame.pack(side="right")

        self.zoom_out_btn = ctk.CTkButton(
            zoom_frame, text="−", width=26, height=26, corner_radius=4,
            fg_color=COLORS["bg_hover"], hover_color=COLORS["primary"],
            font=get_font("base", bold=True), command=self._zoom_out
        )
        self.zoom_out_btn.pack(side="left", padx=1)

        self.zoom_label = ctk.CTkLabel(
            zoom_frame, text="Fit", font=get_font("xs"),
            text_color=COLORS["text_muted"], width=40
        )
        self.zoom_label.pack(side="left", padx=2)

        self.zoom_in_btn = ctk.CTkButton(
            zoom_frame, text="+", width=26, height=26, corner_radius=4,
            fg_color=COLORS["bg_hover"], hover_color=COLORS["primary"],
            font=get_font("base", bold=True), command=self._zoom_in
        )
        self.zoom_in_btn.pack(side="left", padx=1)

        self.fit_btn = ctk.CTkButton(
            zoom_frame, text="⊞", width=26, height=26, corner_radius=4,
            fg_color=COLORS["bg_hover"], hover_color=COLORS["primary"],
            font=get_font("base"), command=self._fit_to_window
        )
        self.fit_btn.pack(side="left", padx=(4, 8))

        self.info_label = ctk.CTkLabel(
            self, text="", font=get_font("xs"), text_color=COLORS["text_muted"], anchor="w"
        )
        self.info_label.pack(fill="x", padx=SPACING["sm"], pady=(0, 4))

        self.canvas_frame = ctk.CTkFrame(
            self, fg_color=COLORS["bg_dark"], corner_radius=RADIUS["sm"],
            border_width=1, border_color=COLORS["border"]
        )
        self.canvas_frame.pack(fill="both", expand=True, padx=SPACING["sm"], pady=(0, SPACING["sm"]))

        self.canvas = tk.Canvas(self.canvas_frame, bg=COLORS["bg_dark"], highlightthickness=0)
        self.v_scroll = ctk.CTkScrollbar(self.canvas_frame, command=self.canvas.yview)
        self.h_scroll = ctk.CTkScrollbar(self.canvas_frame, orientation="horizontal", command=self.canvas.xview)
        self.canvas.configure(yscrollcommand=self.v_scroll.set, xscrollcommand=self.h_scroll.set)

        self.canvas_frame.rowconfigure(0, weight=1)
        self.canvas_frame.columnconfigure(0, weight=1)
        self.canvas.grid(row=0, column=0, sticky="nsew", padx=2, pady=2)
        self.v_scroll.grid(row=0, column=1, sticky="ns", padx=(0, 2), pady=2)
        self.h_scroll.grid(row=1, column=0, sticky="ew", padx=2, pady=(0, 2))

        self.canvas.bind("<Configure>", self._on_canvas_resize)
        self.canvas.bind("<MouseWheel>", self._on_mousewheel)

        self._draw_placeholder("Choose a preview image or an input folder")

    def _draw_placeholder(self, text: str):
        self.canvas.delete("all")
        self.canvas.update_idletasks()
        w = max(self.canvas.winfo_width(), 400)
        h = max(self.canvas.winfo_height(), 300)
        self.canvas.create_text(
            w // 2, h // 2 - 20, text="🖼️", font=(get_font()[0], 48), fill=COLORS["text_muted"]
        )
        self.canvas.create_text(
            w // 2, h // 2 + 40, text=text, font=get_font("base"), fill=COLORS["text_muted"]
        )

    def show_image(self, image: Image.Image, info: str = ""):
        """Display a new render, keeping the current zoom."""
        self.current_image = image
        self.info_label.configure(text=info or f"Size: {image.width}×{image.height}")
        self._render_image()

    def show_placeholder(self, text: str = "No preview"):
        self.current_image = None
        self.info_label.configure(text=text)
        self._draw_placeholder(text)

    def _render_image(self):
        if not self.current_image:
            return

        self.canvas.update_idletasks()
        canvas_w = max(self.canvas.winfo_width(), 100)
        canvas_h = max(self.canvas.winfo_height(), 100)
        img_w, img_h = self.current_image.size

        if self.zoom_level == 0:
            scale = min((canvas_w - 16) / img_w, (canvas_h - 16) / img_h)
        else:
            scale = self.zoom_level
        self.display_scale = scale
        self.zoom_label.configure(text=f"{int(scale * 100)}%")

        new_w = max(50, int(img_w * scale))
        new_h = max(50, int(img_h * scale))
        scaled = self.current_image.resize((new_w, new_h), Image.LANCZOS)
        self.photo_image = ImageTk.PhotoImage(scaled)

        self.canvas.delete("all")
        x = max(0, (canvas_w - new_w) // 2)
        y = max(0, (canvas_h - new_h) // 2)
        self.canvas.create_image(x, y, anchor="nw", image=self.photo_image)
        self.canvas.configure(scrollregion=(0, 0, max(canvas_w, new_w), max(canvas_h, new_h)))

    def _current_fit_scale(self) -> float:
        canvas_w = max(self.canvas.winfo_width(), 100)
        canvas_h = max(self.canvas.winfo_height(), 100)
        return min(canvas_w / self.current_image.width, canvas_h / self.current_image.height)

    def _fit_to_window(self):
        self.zoom_level = 0.0
        self._render_image()

    def _zoom_in(self):
        if not self.current_image:
            return
        if self.zoom_level == 0:
            self.zoom_level = self._current_fit_scale()
        self.zoom_level = min(2.0, self.zoom_level * 1.25)
        self._render_image()

    def _zoom_out(self):
        if not self.current_image:
            return
        if self.zoom_level == 0:
            self.zoom_level = self._current_fit_scale()
        self.zoom_level = max(0.05, self.zoom_level / 1.25)
        self._render_image()

    def _on_canvas_resize(self, event):
        if self.zoom_level == 0 and self.current_image:
            self.after(50, self._render_image)

    def _on_mousewheel(self, event):
        if event.delta > 0:
            self._zoom_in()
        else:
            self._zoom_out()
