class _Theme:
    UP = '#00D4AA'
    DOWN = '#FF4747'
    BACKGROUND = '#0D1117'
    CHART_BACKGROUND = '#161B22'
    PANEL = '#21262D'
    TEXT = '#FFFFFF'
    TEXT_MUTED = '#8B949E'
    ACCENT = '#238636'
    CROSSHAIR = '#8B949E'
    LTP = '#F0B90B'
    LABEL_BG = '#30363D'


theme = _Theme()


def app_stylesheet() -> str:
    return f"""
QWidget {{ background-color: {theme.BACKGROUND}; color: {theme.TEXT}; }}
QWidget#TopToolbar {{ background-color: {theme.PANEL}; }}
QLabel#SymbolLabel {{ font-weight: bold; font-size: 14px; }}
QPushButton {{ background-color: {theme.PANEL}; border: 1px solid {theme.LABEL_BG}; padding: 2px 8px; }}
QPushButton:checked {{ background-color: {theme.ACCENT}; }}
QPushButton:disabled {{ color: {theme.TEXT_MUTED}; }}
QLineEdit {{ background-color: {theme.CHART_BACKGROUND}; border: 1px solid {theme.LABEL_BG}; padding: 4px; }}
QTableWidget {{ background-color: {theme.CHART_BACKGROUND}; gridline-color: {theme.PANEL}; }}
QHeaderView::section {{ background-color: {theme.PANEL}; color: {theme.TEXT_MUTED}; border: 0px; padding: 4px; }}
"""
