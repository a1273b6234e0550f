"""
Theme constants for the Tilemark window.
Dark layout with a warm accent so the preview stays the brightest thing on screen.
"""

COLORS = {
    # Surfaces
    "bg_dark": "#07080b",       # Preview canvas
    "bg_main": "#101218",       # Window background
    "bg_card": "#181b24",       # Sidebar and footer cards
    "bg_hover": "#222634",
    "bg_active": "#2d3245",

    # Accents
    "primary": "#e0563b",       # Run button, section headers
    "primary_hover": "#f06d52",
    "secondary": "#3bb3e0",     # Pause / resume
    "secondary_hover": "#5cc6ee",

    # Text
    "text_primary": "#f5f6fa",
    "text_secondary": "#aeb3c6",
    "text_muted": "#6c7189",

    # Status
    "success": "#22c55e",
    "warning": "#eab308",
    "error": "#ef4444",

    "border": "#2a2f40",
}

FONTS = {
    "family": "Segoe UI",
    "size_xs": 10,
    "size_sm": 11,
    "size_base": 13,
    "size_lg": 15,
    "size_xl": 18,
    "weight_normal": "normal",
    "weight_bold": "bold",
}

RADIUS = {
    "sm": 6,
    "md": 10,
    "lg": 14,
    "full": 9999,
}

SPACING = {
    "xs": 4,
    "sm": 8,
    "md": 14,
    "lg": 20,
}

WINDOW = {
    "min_width": 1100,
    "min_height": 720,
    "default_width": 1400,
    "default_height": 820,
}


def get_font(size: str = "base", bold: bool = False) -> tuple:
    """Font tuple for CustomTkinter widgets."""
    font_size = FONTS.get(f"size_{size}", FONTS["size_base"])
    weight = FONTS["weight_bold"] if bold else FONTS["weight_normal"]
    return (FONTS["family"], font_size, weight)
