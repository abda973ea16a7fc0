import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")

import pygame

from alerts import PygameAlertCenter, RecordingAlertCenter


def test_denied_permission_schedules_nothing(monkeypatch):
    pygame.init()
    monkeypatch.setenv("CATFEEDER_ALERTS", "0")
    center = PygameAlertCenter()
    assert center.request_permission() is False
    center.schedule_one_shot(10, "title", "body")
    assert center.pending == {}


def test_same_identifier_replaces_pending():
    pygame.init()
    center = PygameAlertCenter()
    assert center.request_permission() is True
    center.schedule_one_shot(30, "t", "first")
    center.schedule_one_shot(10, "t", "second")
    center.schedule_one_shot(1, "t", "now", identifier="immediate_hunger")
    assert sorted(center.pending) == ["hunger", "immediate_hunger"]
    assert center.pending["hunger"].body == "second"
    center.cancel_all()
    assert center.pending == {}


def test_recording_center_keeps_calls_when_denied():
    center = RecordingAlertCenter(granted=False)
    assert center.request_permission() is False
    center.schedule_one_shot(5, "t", "b")
    assert center.pending == {}
    assert center.scheduled[0].delay == 5.0
