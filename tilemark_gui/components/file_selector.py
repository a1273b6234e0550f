"""
Sidebar input widgets: path selector, integer slider and colour picker.
"""

import customtkinter as ctk
from pathlib import Path
from tkinter import colorchooser, filedialog
from typing import Callable, List, Optional

from tilemark_gui.theme import COLORS, RADIUS, SPACING, get_font


class FileSelector(ctk.CTkFrame):
    """Path entry with a browse button; the border shows whether the path exists."""

    def __init__(
        self,
        master,
        label: str,
        is_folder: bool = False,
        filetypes: Optional[List[tuple]] = None,
        on_change: Optional[Callable[[str], None]] = None,
        **kwargs
    ):
        super().__init__(master, fg_color="transparent", **kwargs)

        self.is_folder = is_folder
        self.filetypes = filetypes or [("All files", "*.*")]
        self.on_change = on_change
        self.path_var = ctk.StringVar()

        self._build_ui(label)

    def _build_ui(self, label: str):
        ctk.CTkLabel(
            self, text=label, font=get_font("sm", bold=True),
            text_color=COLORS["text_secondary"], anchor="w"
        ).pack(fill="x", pady=(0, SPACING["xs"]))

        container = ctk.CTkFrame(self, fg_color="transparent")
        container.pack(fill="x")
        container.columnconfigure(0, weight=1)

        self.entry = ctk.CTkEntry(
            container, textvariable=self.path_var, height=32,
            corner_radius=RADIUS["sm"], border_width=2, border_color=COLORS["border"],
            fg_color=COLORS["bg_main"], text_color=COLORS["text_primary"], font=get_font("xs")
        )
        self.entry.grid(row=0, column=0, sticky="ew", padx=(0, SPACING["xs"]))

        self.browse_btn = ctk.CTkButton(
            container, text="📂" if self.is_folder else "🖼️", width=36, height=32,
            corner_radius=RADIUS["sm"], fg_color=COLORS["bg_hover"],
            hover_color=COLORS["bg_active"], font=get_font("sm"), command=self._browse
        )
        self.browse_btn.grid(row=0, column=1)

        self.path_var.trace_add("write", self._on_path_change)

    def _browse(self):
        if self.is_folder:
            path = filedialog.askdirectory()
        else:
            path = filedialog.askopenfilename(filetypes=self.filetypes)
        if path:
            self.path_var.set(path)

    def _on_path_change(self, *args):
        path = self.path_var.get()
        if path:
            p = Path(path)
            is_valid = p.is_dir() if self.is_folder else p.is_file()
            self.entry.configure(border_color=COLORS["success"] if is_valid else COLORS["error"])
        else:
            self.entry.configure(border_color=COLORS["border"])

        if self.on_change:
            self.on_change(path)

    def get(self) -> str:
        return self.path_var.get()

    def set(self, path: str):
        self.path_var.set(path)


class SettingsSlider(ctk.CTkFrame):
    """Integer slider with its current value shown beside the label."""

    def __init__(
        self,
        master,
        label: str,
        from_: int,
        to: int,
        default: int,
        suffix: str = "",
        on_change: Optional[Callable[[int], None]] = None,
        **kwargs
    ):
        super().__init__(master, fg_color="transparent", **kwargs)

        self.suffix = suffix
        self.on_change = on_change

        header = ctk.CTkFrame(self, fg_color="transparent")
        header.pack(fill="x")

        ctk.CTkLabel(
            header, text=label, font=get_font("sm"),
            text_color=COLORS["text_secondary"], anchor="w"
        ).pack(side="left")

        self.value_label = ctk.CTkLabel(
            header, text=self._format_value(default), font=get_font("sm", bold=True),
            text_color=COLORS["primary"], anchor="e"
        )
        self.value_label.pack(side="right")

        self.slider = ctk.CTkSlider(
            self, from_=from_, to=to, number_of_steps=max(1, to - from_), height=16,
            button_color=COLORS["primary"], button_hover_color=COLORS["primary_hover"],
            progress_color=COLORS["primary"], fg_color=COLORS["bg_hover"],
            command=self._on_slide
        )
        self.slider.set(default)
        self.slider.pack(fill="x", pady=(SPACING["xs"], 0))

    def _format_value(self, value: float) -> str:
        return f"{int(round(value))}{self.suffix}"

    def _on_slide(self, value: float):
        self.value_label.configure(text=self._format_value(value))
        if self.on_change:
            self.on_change(int(round(value)))

    def get(self) -> int:
        return int(round(self.slider.get()))

    def set(self, value: int):
        self.slider.set(value)
        self.value_label.configure(text=self._format_value(value))


class ColorSelector(ctk.CTkFrame):
    """Swatch button that opens the system colour dialog."""

    def __init__(
        self,
        master,
        label: str,
        default: str = "#FFFFFF",
        on_change: Optional[Callable[[str], None]] = None,
        **kwargs
    ):
        super().__init__(master, fg_color="transparent", **kwargs)

        self.on_change = on_change
        self.color = default

        ctk.CTkLabel(
            self, text=label, font=get_font("sm"),
            text_color=COLORS["text_secondary"], anchor="w"
        ).pack(side="left")

        self.swatch = ctk.CTkButton(
            self, text=default, width=96, height=26, corner_radius=RADIUS["sm"],
            fg_color=default, hover_color=default, border_width=1,
            border_color=COLORS["border"], text_color=self._text_color(default),
            font=get_font("xs", bold=True), command=self._pick
        )
        self.swatch.pack(side="right")

    @staticmethod
    def _text_color(hex_color: str) -> str:
        r, g, b = (int(hex_color[i:i + 2], 16) for i in (1, 3, 5))
        return "#000000" if (r * 299 + g * 587 + b * 114) / 1000 > 140 else "#ffffff"

    def _pick(self):
        _, chosen = colorchooser.askcolor(color=self.color, title="Watermark colour")
        if chosen:
            self.set(chosen.upper())
            if self.on_change:
                self.on_change(self.color)

    def get(self) -> str:
        return self.color

    def set(self, hex_color: str):
        self.color = hex_color
        self.swatch.configure(
            text=hex_color, fg_color=hex_color, hover_color=hex_color,
            text_color=self._text_color(hex_color)
        )
