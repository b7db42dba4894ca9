"""
Display helpers for incident records.

Labels, icons and colors that map front ends render for each
severity level, plus the water level and status texts.
"""

from typing import Optional, Tuple

from .models import IncidentRecord

SEVERITY_LABELS = {
    "minor": ("Minor", "⚪"),
    "moderate": ("Moderate", "🟡"),
    "severe": ("Severe", "🟠"),
    "critical": ("Critical", "🔴"),
}
UNKNOWN_SEVERITY_LABEL = ("Unknown", "⚪")

SEVERITY_COLORS = {
    "minor": "#ffd700",     # Gold
    "moderate": "#ffa500",  # Orange
    "severe": "#ff4500",    # Red-Orange
    "critical": "#ff0000",  # Red
}
DEFAULT_SEVERITY_COLOR = "#ffa500"

def severity_label(level: str) -> Tuple[str, str]:
    """심각도 라벨과 아이콘 쌍을 반환합니다."""
    return SEVERITY_LABELS.get(level, UNKNOWN_SEVERITY_LABEL)

def severity_color(level: str) -> str:
    return SEVERITY_COLORS.get(level, DEFAULT_SEVERITY_COLOR)

def format_water_level(level: Optional[str]) -> Optional[str]:
    """'above_waist' -> 'Above Waist Water', 빈 값이면 None"""
    if not level:
        return None
    words = [word[:1].upper() + word[1:] for word in level.split("_")]
    return f"{' '.join(words)} Water"

def status_text(record: IncidentRecord) -> str:
    return "ACTIVE" if record.is_active else "INACTIVE"

def incident_view(record: IncidentRecord) -> dict:
    """
    HTTP 응답용 인시던트 뷰를 생성합니다.

    저장 형식에 파생 값(isActive, 라벨, 색상)을 덧붙입니다.
    파생 값은 매 호출마다 다시 계산됩니다.
    """
    label, icon = severity_label(record.severity_level)
    view = record.to_storage()
    view.update({
        "isActive": record.is_active,
        "statusText": status_text(record),
        "severityLabel": label,
        "severityIcon": icon,
        "color": severity_color(record.severity_level),
        "waterLevelText": format_water_level(record.water_level),
    })
    return view
