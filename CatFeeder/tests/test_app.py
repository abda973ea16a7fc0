import os
import json
import time

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import pygame

import catfeeder
from models import Pet, AvatarSymbol
from storage import SaveStore


def _click(eng, pos):
    evt = pygame.event.Event(pygame.MOUSEBUTTONDOWN, {"pos": pos, "button": 1})
    pygame.event.post(evt)
    eng._last_step_time = time.time()
    eng.step()


def _saved_pet_file(tmp_path, **extra):
    path = tmp_path / "save.json"
    data = {"pet": Pet(name="Mia", avatar_symbol=AvatarSymbol.FOX).to_json()}
    data.update(extra)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_onboarding_shown_without_saved_pet(tmp_path):
    eng = catfeeder.GameEngine(save_file=tmp_path / "save.json")
    assert eng.screen_name == catfeeder.SCREEN_ONBOARDING
    assert not eng.ticking
    # Continue is disabled while the name is empty
    _click(eng, eng.btn_continue.center)
    assert eng.screen_name == catfeeder.SCREEN_ONBOARDING
    assert eng.pet is None


def test_onboarding_creates_and_persists_pet(tmp_path):
    eng = catfeeder.GameEngine(save_file=tmp_path / "save.json")
    _click(eng, eng.onboarding_avatar_rects[1].center)
    assert eng.onboarding_symbol is AvatarSymbol.DOG
    eng.onboarding_name = "Bello"
    _click(eng, eng.btn_continue.center)
    assert eng.screen_name == catfeeder.SCREEN_PET
    assert eng.ticking
    pet = SaveStore(tmp_path / "save.json").load_pet()
    assert pet.name == "Bello"
    assert pet.avatar_symbol is AvatarSymbol.DOG
    assert pet.notifications_enabled is True


def test_corrupt_save_falls_back_to_onboarding(tmp_path):
    path = tmp_path / "save.json"
    path.write_text(json.dumps({"pet": "broken"}), encoding="utf-8")
    eng = catfeeder.GameEngine(save_file=path)
    assert eng.screen_name == catfeeder.SCREEN_ONBOARDING


def test_feed_button_feeds_and_plays_sound(tmp_path):
    eng = catfeeder.GameEngine(save_file=_saved_pet_file(tmp_path))
    assert eng.screen_name == catfeeder.SCREEN_PET
    eng.engine.state.hunger_level = 50
    _click(eng, eng.btn_feed.center)
    assert eng.engine.hunger_level == 60
    assert eng.sounds.last_played == "feed"
    assert eng.food_anim_elapsed is not None


def test_hungry_pet_is_drawn_smaller(tmp_path):
    eng = catfeeder.GameEngine(save_file=_saved_pet_file(tmp_path))
    eng.step()
    assert eng._last_drawn_pet["scale"] == 1.0
    eng.engine.state.hunger_level = 20
    eng.step()
    assert eng._last_drawn_pet["scale"] == 0.9
    assert eng._last_drawn_pet["hungry"] is True


def test_double_click_starts_wiggle(tmp_path):
    eng = catfeeder.GameEngine(save_file=_saved_pet_file(tmp_path))
    _click(eng, eng.pet_rect.center)
    assert eng.wiggle_elapsed is None
    _click(eng, eng.pet_rect.center)
    assert eng.wiggle_elapsed is not None


def test_minimize_and_restore_round_trip(tmp_path):
    path = _saved_pet_file(tmp_path)
    eng = catfeeder.GameEngine(save_file=path)
    eng.handle_event(pygame.event.Event(pygame.WINDOWMINIMIZED))
    assert eng.backgrounded
    assert not eng.ticking
    assert SaveStore(path).load_snapshot().hunger_level == 100
    assert "hunger" in eng.alerts.pending

    eng.handle_event(pygame.event.Event(pygame.WINDOWRESTORED))
    assert not eng.backgrounded
    assert eng.ticking
    assert SaveStore(path).load_snapshot() is None
    assert eng.engine.hunger_level == 100


def test_relaunch_catches_up_on_elapsed_time(tmp_path):
    path = _saved_pet_file(tmp_path, last_hunger_level=100, last_background_date=time.time() - 35)
    eng = catfeeder.GameEngine(save_file=path)
    assert eng.engine.hunger_level == 30
    assert SaveStore(path).load_snapshot() is None


def test_settings_toggle_and_avatar_change(tmp_path):
    path = _saved_pet_file(tmp_path)
    eng = catfeeder.GameEngine(save_file=path)
    _click(eng, eng.tab_settings.center)
    assert eng.screen_name == catfeeder.SCREEN_SETTINGS

    _click(eng, eng.btn_notifications.center)
    assert eng.pet.notifications_enabled is False
    assert eng.engine.pet.notifications_enabled is False
    assert SaveStore(path).load_pet().notifications_enabled is False

    _click(eng, eng.settings_avatar_rects[7].center)
    assert SaveStore(path).load_pet().avatar_symbol is AvatarSymbol.COW


def test_settings_rename(tmp_path):
    path = _saved_pet_file(tmp_path)
    eng = catfeeder.GameEngine(save_file=path)
    _click(eng, eng.tab_settings.center)
    _click(eng, eng.settings_name_rect.center)
    assert eng.editing_name
    eng.settings_name = "Luna"
    _click(eng, eng.tab_pet.center)
    assert not eng.editing_name
    assert SaveStore(path).load_pet().name == "Luna"
    assert eng.engine._alert_text()[1].startswith("Luna")


def test_fired_alert_shows_banner(tmp_path):
    eng = catfeeder.GameEngine(save_file=_saved_pet_file(tmp_path))
    eng.engine.state.hunger_level = 45
    eng.handle_event(pygame.event.Event(pygame.WINDOWMINIMIZED))
    event_type = eng.alerts._event_types["hunger"]
    eng.handle_event(pygame.event.Event(event_type, {"identifier": "hunger"}))
    assert eng.hud_text == "Mia is starving!\U0001F97A"
    assert eng.sounds.last_played == "alert"
    assert eng.alerts.pending == {}


def test_whitespace_name_keeps_continue_disabled(tmp_path):
    eng = catfeeder.GameEngine(save_file=tmp_path / "save.json")
    eng.onboarding_name = "   "
    _click(eng, eng.btn_continue.center)
    assert eng.screen_name == catfeeder.SCREEN_ONBOARDING
    assert eng.pet is None
    assert not eng.ticking


def test_queued_tick_after_minimize_is_ignored(tmp_path):
    path = _saved_pet_file(tmp_path)
    eng = catfeeder.GameEngine(save_file=path)
    eng.engine.state.hunger_level = 60
    eng.handle_event(pygame.event.Event(pygame.WINDOWMINIMIZED))
    eng.handle_event(pygame.event.Event(eng.tick_event))
    assert eng.engine.hunger_level == 60
    assert SaveStore(path).load_snapshot().hunger_level == 60

    eng.handle_event(pygame.event.Event(pygame.WINDOWRESTORED))
    eng.handle_event(pygame.event.Event(eng.tick_event))
    assert eng.engine.hunger_level == 55


def test_crossing_into_hunger_shows_banner_once(tmp_path):
    eng = catfeeder.GameEngine(save_file=_saved_pet_file(tmp_path))
    eng.engine.state.hunger_level = 30
    eng._last_seen_hunger = 30
    eng.handle_event(pygame.event.Event(eng.tick_event))
    assert eng.hud_text is None
    eng.handle_event(pygame.event.Event(eng.tick_event))
    assert eng.engine.hunger_level == 20
    assert eng.hud_text == "Mia is getting hungry!"

    eng.hud_text = None
    eng.handle_event(pygame.event.Event(eng.tick_event))
    assert eng.hud_text is None


def test_unwritable_save_location_does_not_crash(tmp_path):
    path = tmp_path / "missing_dir" / "save.json"
    eng = catfeeder.GameEngine(save_file=path)
    eng.onboarding_name = "Bello"
    _click(eng, eng.btn_continue.center)
    assert eng.screen_name == catfeeder.SCREEN_PET
    eng.enter_background()
    assert eng.backgrounded
    assert not path.exists()
    assert not (tmp_path / "missing_dir" / "save.json.tmp").exists()
