"""
timeline.py — Pure helpers for editing a client's timeline.

Each helper returns a new list and leaves the input untouched; the caller
hands the result to the update engine so progress is recalculated.
"""

from dataclasses import replace

from engine.records import TimelineStep, TimelineStatus, new_id


def set_step_status(timeline, step_id: str, status) -> list:
    status = TimelineStatus(status) if not isinstance(status, TimelineStatus) else status
    return [replace(s, status=status) if s.id == step_id else s for s in timeline]


def rename_step(timeline, step_id: str, label: str) -> list:
    label = (label or "").strip()
    if not label:
        return list(timeline)
    return [replace(s, label=label) if s.id == step_id else s for s in timeline]


def add_step(timeline, label: str, date: str = None) -> list:
    label = (label or "").strip()
    if not label:
        return list(timeline)
    return list(timeline) + [TimelineStep(id=new_id("t"), label=label, date=date)]


def remove_step(timeline, step_id: str) -> list:
    return [s for s in timeline if s.id != step_id]


def has_step(timeline, step_id: str) -> bool:
    return any(s.id == step_id for s in timeline)
