"""
views/components/sidebar.py

문제 번호 네비게이션 그리드 컴포넌트.

색상 코딩(css_class):
  - 현재 문제: "question-btn current"
  - 답한 문제: "question-btn answered"
  - 미답 문제: "question-btn"
"""

from __future__ import annotations

from mantra_cbt.services.navigation import NavigationController


def _css_class(cell: dict) -> str:
    classes = ["question-btn"]
    if cell["is_current"]:
        classes.append("current")
    if cell["is_answered"]:
        classes.append("answered")
    return " ".join(classes)


def render(navigation: NavigationController) -> dict:
    """그리드 셀 목록과 진행 현황(전체/답함/남음)을 반환한다."""
    cells = [{**cell, "css_class": _css_class(cell)} for cell in navigation.grid()]
    summary = navigation.summary()
    total = summary["total"]
    return {
        "cells": cells,
        "summary": summary,
        "progress": summary["answered"] / total if total > 0 else 0,
    }
