"""
views/components/timer.py

남은 시험 시간 표시 컴포넌트.
숫자 상태는 TimerController가 관리하고, 여기서는 표시 형식과 경고 여부만 계산한다.
"""

from config import TIMER_WARNING_SECONDS


def format_time(seconds: int) -> str:
    """초를 HH:MM:SS 문자열로 변환."""
    seconds = max(0, int(seconds))
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def is_warning(seconds: int, threshold: int = TIMER_WARNING_SECONDS) -> bool:
    """5분 미만이면 경고 표시."""
    return seconds < threshold


def render(remaining_seconds: int, total_seconds: int) -> dict:
    """
    타이머 표시 정보.

    Returns:
        {"remaining_seconds", "total_seconds", "display", "warning", "css_class"}
    """
    warning = is_warning(remaining_seconds)
    return {
        "remaining_seconds": remaining_seconds,
        "total_seconds": total_seconds,
        "display": format_time(remaining_seconds),
        "warning": warning,
        "css_class": "time warning" if warning else "time",
    }
