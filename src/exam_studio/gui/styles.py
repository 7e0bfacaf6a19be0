"""
Colors for the editor window.
"""


class Colors:
    PRIMARY_BLUE = "#0364B8"

    BACKGROUND = "#f5f5f5"
    SURFACE = "#ffffff"

    TEXT_PRIMARY = "#1f1f1f"
    TEXT_SECONDARY = "#666666"

    BORDER = "#e0e0e0"

    ERROR = "#d32f2f"
    SUCCESS = "#388e3c"
    WARNING = "#f57c00"
    INFO = "#1976d2"


GLOBAL_STYLESHEET = f"""
    QMainWindow {{
        background-color: {Colors.BACKGROUND};
    }}
    QGroupBox {{
        background-color: {Colors.SURFACE};
        border: 1px solid {Colors.BORDER};
        border-radius: 4px;
        margin-top: 20px;
    }}
    QGroupBox::title {{
        subcontrol-origin: margin;
        left: 8px;
        padding: 0 4px;
        color: {Colors.TEXT_PRIMARY};
    }}
    QProgressBar::chunk {{
        background-color: {Colors.PRIMARY_BLUE};
    }}
"""
