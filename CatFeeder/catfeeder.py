#!/usr/bin/env python3
import os
import sys
import time
import math
import logging
import dataclasses

import pygame

from constants import (
    SCREEN_WIDTH, SCREEN_HEIGHT, FPS, SAVE_FILE, LOG_LEVEL, TICK_INTERVAL,
    MAX_HUNGER, LOW_HUNGER_THRESHOLD,
    WIGGLE_DURATION, FOOD_ANIM_DURATION, FOOD_ANIM_RISE, BANNER_DURATION, DOUBLE_CLICK_SECONDS,
    COLOR_BG, COLOR_TEXT, COLOR_TEXT_BRIGHT, COLOR_UI_BAR_BG, COLOR_FULL, COLOR_STARVING,
    COLOR_BTN, COLOR_BTN_DISABLED, COLOR_SELECTED, COLOR_BANNER_BG, COLOR_PET_EYES, COLOR_FOOD,
)
from models import Pet, AvatarSymbol
from storage import SaveStore
from alerts import PygameAlertCenter
from hunger_engine import HungerEngine

logger = logging.getLogger(__name__)

# Mixer pre-init from environment, same knobs as the audio config on small boards
_AUDIO_FREQ = int(os.getenv("CATFEEDER_AUDIO_FREQ", "22050"))
_AUDIO_BUFFER = int(os.getenv("CATFEEDER_AUDIO_BUF", "512"))
try:
    pygame.mixer.pre_init(_AUDIO_FREQ, -16, 2, _AUDIO_BUFFER)
except pygame.error:
    pass

SCREEN_ONBOARDING = "onboarding"
SCREEN_PET = "pet"
SCREEN_SETTINGS = "settings"

NAME_MAX_LENGTH = 20
AVATARS = list(AvatarSymbol)


def bmp_only(text):
    # older SDL_ttf builds reject characters outside the Basic Multilingual Plane
    return "".join(ch for ch in text if ord(ch) <= 0xFFFF)


def avatar_grid(x, y, cell, gap):
    """Rects for the 4x2 avatar picker, in AvatarSymbol order."""
    rects = []
    for i in range(len(AVATARS)):
        row, col = divmod(i, 4)
        rects.append(pygame.Rect(x + col * (cell + gap), y + row * (cell + gap), cell, cell))
    return rects


class SoundManager:
    """Plays short effects; a silent no-op when the mixer is unavailable.

    `last_played` records every request so headless runs can be inspected.
    """
    def __init__(self, assets_dir=None):
        self.enabled = False
        self.last_played = None
        self.assets = {}
        self.assets_dir = assets_dir or os.path.join(os.path.dirname(__file__), "assets", "sounds")
        try:
            pygame.mixer.init()
            self.enabled = True
        except pygame.error as e:
            logger.info("Audio disabled: %s", e)

    def play_effect(self, name):
        self.last_played = name
        if not self.enabled:
            return
        snd = self.assets.get(name)
        if snd is None and name not in self.assets:
            path = os.path.join(self.assets_dir, f"{name}.wav")
            try:
                snd = pygame.mixer.Sound(path)
            except (pygame.error, FileNotFoundError):
                snd = None
            self.assets[name] = snd
        if snd:
            snd.play()


class GameEngine:
    """Window, screens and event loop around one HungerEngine."""
    def __init__(self, save_file=None, clock=time.time):
        pygame.init()
        try:
            self.screen = pygame.display.set_mode((SCREEN_WIDTH, SCREEN_HEIGHT), pygame.SCALED | pygame.RESIZABLE)
        except pygame.error:
            # Headless drivers may not support scaled/resizable windows
            self.screen = pygame.display.set_mode((SCREEN_WIDTH, SCREEN_HEIGHT))
            logger.warning("No scaled renderer available, using a plain window")
        self.caption = "CatFeeder"
        pygame.display.set_caption(self.caption)
        self.clock = pygame.time.Clock()
        self.fps = FPS
        self.font = pygame.font.Font(None, 24)
        self.big_font = pygame.font.Font(None, 40)
        self.small_font = pygame.font.Font(None, 18)

        self.store = SaveStore(save_file or SAVE_FILE)
        self.pet = self.store.load_pet()
        self.alerts = PygameAlertCenter()
        self.engine = HungerEngine(self.alerts, pet=self.pet, store=self.store, clock=clock)
        self._last_seen_hunger = self.engine.hunger_level
        self.engine.observe(self._on_hunger_changed)
        self.sounds = SoundManager()

        self.tick_event = pygame.event.custom_type()
        self.ticking = False
        self.backgrounded = False
        self.screen_name = SCREEN_PET if self.pet else SCREEN_ONBOARDING

        # Onboarding form
        self.onboarding_name = ""
        self.onboarding_symbol = AvatarSymbol.CAT
        self.onboarding_avatar_rects = avatar_grid(100, 50, 60, 10)
        self.onboarding_name_rect = pygame.Rect(100, 200, 280, 32)
        self.btn_continue = pygame.Rect(190, 250, 100, 36)

        # Pet screen
        self.pet_center = (170, 160)
        self.pet_rect = pygame.Rect(self.pet_center[0] - 80, self.pet_center[1] - 80, 160, 160)
        self.btn_feed = pygame.Rect(330, 120, 100, 80)

        # Settings form
        self.settings_name = self.pet.name if self.pet else ""
        self.editing_name = False
        self.settings_name_rect = pygame.Rect(120, 45, 240, 30)
        self.settings_avatar_rects = avatar_grid(124, 90, 50, 8)
        self.btn_notifications = pygame.Rect(120, 215, 240, 32)

        # Tab bar
        self.tab_pet = pygame.Rect(0, SCREEN_HEIGHT - 35, SCREEN_WIDTH // 2, 35)
        self.tab_settings = pygame.Rect(SCREEN_WIDTH // 2, SCREEN_HEIGHT - 35, SCREEN_WIDTH // 2, 35)

        # Banner for delivered alerts and short confirmations
        self.hud_text = None
        self.hud_start = 0.0
        self.hud_duration = 0.0

        # Animations, advanced by step() from accumulated dt
        self.wiggle_elapsed = None
        self.food_anim_elapsed = None
        self._last_pet_click = 0.0
        self._last_step_time = time.time()
        self._last_drawn_pet = {}

        self.alerts.request_permission()
        self.engine.restore()
        if self.pet is not None:
            self._start_ticking()
        pygame.key.start_text_input()

    # --- lifecycle ---

    def _start_ticking(self):
        # sub-millisecond intervals would disable the timer
        pygame.time.set_timer(self.tick_event, max(1, int(TICK_INTERVAL * 1000)))
        self.ticking = True

    def _stop_ticking(self):
        pygame.time.set_timer(self.tick_event, 0)
        self.ticking = False

    def enter_background(self):
        if self.backgrounded:
            return
        self.backgrounded = True
        self._stop_ticking()
        if self.pet is not None:
            self.engine.enter_background()

    def resume_foreground(self):
        if not self.backgrounded:
            return
        self.backgrounded = False
        pygame.display.set_caption(self.caption)
        self.engine.resume_foreground()
        if self.pet is not None:
            self._start_ticking()

    def _on_hunger_changed(self, level):
        """Warn on screen when hunger first crosses into the starving range."""
        was_hungry = self._last_seen_hunger <= LOW_HUNGER_THRESHOLD
        self._last_seen_hunger = level
        if level <= LOW_HUNGER_THRESHOLD and not was_hungry and self.pet is not None:
            self.show_hud(f"{self.pet.name} is getting hungry!")

    def _deliver_alert(self, alert):
        logger.info("%s %s", alert.title, alert.body)
        self.show_hud(alert.body, duration=BANNER_DURATION)
        self.sounds.play_effect("alert")
        if self.backgrounded:
            pygame.display.set_caption(f"{alert.title} {alert.body}")

    def show_hud(self, text, duration=1.5):
        """Show a short-lived banner that fades out."""
        self.hud_text = text
        self.hud_start = time.time()
        self.hud_duration = duration

    # --- pet record ---

    def _update_pet(self, pet):
        self.pet = pet
        self.store.save_pet(pet)
        self.engine.set_pet(pet)

    def complete_onboarding(self):
        if not self.onboarding_name.strip():
            return False
        self._update_pet(Pet.create(self.onboarding_name, self.onboarding_symbol))
        self.settings_name = self.pet.name
        self.screen_name = SCREEN_PET
        self._start_ticking()
        logger.info("Welcome %s the %s", self.pet.name, self.pet.avatar_symbol.label)
        return True

    def _commit_settings_name(self):
        self.editing_name = False
        name = self.settings_name.strip()
        if not name or self.pet is None:
            self.settings_name = self.pet.name if self.pet else ""
            return
        if name != self.pet.name:
            self._update_pet(dataclasses.replace(self.pet, name=name))
        self.settings_name = name

    def toggle_notifications(self):
        if self.pet is None:
            return
        self._update_pet(dataclasses.replace(self.pet, notifications_enabled=not self.pet.notifications_enabled))

    # --- input ---

    def feed(self):
        self.engine.feed()
        self.sounds.play_effect("feed")
        if self.food_anim_elapsed is None:
            self.food_anim_elapsed = 0.0

    def _click(self, pos):
        if self.screen_name == SCREEN_ONBOARDING:
            for symbol, rect in zip(AVATARS, self.onboarding_avatar_rects):
                if rect.collidepoint(pos):
                    self.onboarding_symbol = symbol
                    return
            if self.btn_continue.collidepoint(pos):
                self.complete_onboarding()
            return

        if self.tab_pet.collidepoint(pos):
            if self.editing_name:
                self._commit_settings_name()
            self.screen_name = SCREEN_PET
            return
        if self.tab_settings.collidepoint(pos):
            self.screen_name = SCREEN_SETTINGS
            self.settings_name = self.pet.name
            return

        if self.screen_name == SCREEN_PET:
            if self.btn_feed.collidepoint(pos):
                self.feed()
            elif self.pet_rect.collidepoint(pos):
                now = time.time()
                if now - self._last_pet_click <= DOUBLE_CLICK_SECONDS:
                    self.wiggle_elapsed = 0.0
                    self._last_pet_click = 0.0
                else:
                    self._last_pet_click = now
            return

        # Settings
        if self.settings_name_rect.collidepoint(pos):
            self.editing_name = True
            return
        if self.editing_name:
            self._commit_settings_name()
        for symbol, rect in zip(AVATARS, self.settings_avatar_rects):
            if rect.collidepoint(pos):
                if symbol != self.pet.avatar_symbol:
                    self._update_pet(dataclasses.replace(self.pet, avatar_symbol=symbol))
                return
        if self.btn_notifications.collidepoint(pos):
            self.toggle_notifications()

    def _text_input(self, text):
        if self.screen_name == SCREEN_ONBOARDING:
            self.onboarding_name = (self.onboarding_name + text)[:NAME_MAX_LENGTH]
        elif self.screen_name == SCREEN_SETTINGS and self.editing_name:
            self.settings_name = (self.settings_name + text)[:NAME_MAX_LENGTH]

    def _key(self, key):
        if self.screen_name == SCREEN_ONBOARDING:
            if key == pygame.K_BACKSPACE:
                self.onboarding_name = self.onboarding_name[:-1]
            elif key == pygame.K_RETURN:
                self.complete_onboarding()
        elif self.screen_name == SCREEN_SETTINGS and self.editing_name:
            if key == pygame.K_BACKSPACE:
                self.settings_name = self.settings_name[:-1]
            elif key in (pygame.K_RETURN, pygame.K_ESCAPE):
                self._commit_settings_name()

    def handle_event(self, event):
        """Dispatch one pygame event. Returns False when the app should quit."""
        if event.type == pygame.QUIT:
            return False
        if event.type == self.tick_event:
            # a tick queued before the window was minimised must not touch the snapshot
            if not self.backgrounded:
                self.engine.tick()
        elif self.alerts.owns(event):
            alert = self.alerts.handle_event(event)
            if alert:
                self._deliver_alert(alert)
        elif event.type in (pygame.WINDOWMINIMIZED, pygame.WINDOWHIDDEN):
            self.enter_background()
        elif event.type in (pygame.WINDOWRESTORED, pygame.WINDOWSHOWN):
            self.resume_foreground()
        elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            self._click(event.pos)
        elif event.type == pygame.TEXTINPUT:
            self._text_input(event.text)
        elif event.type == pygame.KEYDOWN:
            self._key(event.key)
        return True

    # --- animation ---

    def _update_animations(self, dt):
        if self.wiggle_elapsed is not None:
            self.wiggle_elapsed += dt
            if self.wiggle_elapsed >= WIGGLE_DURATION:
                self.wiggle_elapsed = None
        if self.food_anim_elapsed is not None:
            self.food_anim_elapsed += dt
            if self.food_anim_elapsed >= FOOD_ANIM_DURATION:
                self.food_anim_elapsed = None

    def wiggle_angle(self):
        if self.wiggle_elapsed is None:
            return 0.0
        frac = min(1.0, self.wiggle_elapsed / WIGGLE_DURATION)
        # ease in-out over one full turn
        return 360.0 * (0.5 - 0.5 * math.cos(math.pi * frac))

    # --- drawing ---

    def _text(self, text, pos, font=None, color=COLOR_TEXT, center=False):
        surf = (font or self.font).render(bmp_only(text), True, color)
        if center:
            pos = (pos[0] - surf.get_width() // 2, pos[1])
        self.screen.blit(surf, pos)

    def _button(self, rect, label, enabled=True, selected=False):
        color = COLOR_SELECTED if selected else (COLOR_BTN if enabled else COLOR_BTN_DISABLED)
        pygame.draw.rect(self.screen, color, rect, border_radius=6)
        text_color = COLOR_TEXT_BRIGHT if enabled else COLOR_TEXT
        surf = self.font.render(label, True, text_color)
        self.screen.blit(surf, (rect.centerx - surf.get_width() // 2, rect.centery - surf.get_height() // 2))

    def _text_field(self, rect, value, active, placeholder):
        pygame.draw.rect(self.screen, COLOR_UI_BAR_BG, rect, border_radius=4)
        if active:
            pygame.draw.rect(self.screen, COLOR_SELECTED, rect, 2, border_radius=4)
        shown = value + ("|" if active else "")
        color = COLOR_TEXT_BRIGHT if value else COLOR_TEXT
        self._text(shown or placeholder, (rect.x + 8, rect.y + 8), color=color)

    def draw_pet(self, surface, center, symbol, size=120, hungry=False):
        """Chibi-style pet from primitives, tinted and eared per avatar."""
        cx, cy = center
        base = symbol.color
        shade = tuple(max(0, c - 30) for c in base)
        body_w = size
        body_h = int(size * 0.8)
        body_rect = pygame.Rect(cx - body_w // 2, cy - body_h // 2 + size // 10, body_w, body_h)
        top = body_rect.top + 6
        ears = symbol.ears
        if ears == "pointy":
            for sx in (-1, 1):
                pygame.draw.polygon(surface, shade, [(cx + sx * size // 4, top + 10), (cx + sx * size // 5, top - size // 5), (cx + sx * size // 9, top + 6)])
        elif ears == "round":
            for sx in (-1, 1):
                pygame.draw.circle(surface, shade, (cx + sx * size // 3, top + 2), size // 8)
        elif ears == "long":
            for sx in (-1, 1):
                pygame.draw.ellipse(surface, shade, (cx + sx * size // 6 - size // 14, top - size // 2, size // 7, size // 2 + 10))
        elif ears == "floppy":
            for sx in (-1, 1):
                pygame.draw.ellipse(surface, shade, (cx + sx * (size // 2 - size // 10) - size // 10, top, size // 5, size // 3))
        elif ears == "horns":
            for sx in (-1, 1):
                pygame.draw.polygon(surface, (230, 220, 190), [(cx + sx * size // 4, top + 8), (cx + sx * size // 3, top - size // 6), (cx + sx * size // 6, top + 4)])
        pygame.draw.ellipse(surface, shade, body_rect)
        pygame.draw.ellipse(surface, base, body_rect.inflate(-8, -8))

        eye_y = body_rect.centery - body_h // 8
        eye_dx = size // 5
        eye_r = max(3, size // 10)
        for sx in (-1, 1):
            pygame.draw.circle(surface, (255, 255, 255), (cx + sx * eye_dx, eye_y), eye_r)
            pygame.draw.circle(surface, COLOR_PET_EYES, (cx + sx * eye_dx, eye_y), max(2, eye_r // 2))

        mouth_rect = pygame.Rect(cx - size // 8, body_rect.centery + body_h // 8, size // 4, size // 10)
        if hungry:
            pygame.draw.arc(surface, (60, 30, 30), mouth_rect, math.pi * 0.25, math.pi * 0.75, 3)
        else:
            pygame.draw.arc(surface, (60, 30, 30), mouth_rect.move(0, -mouth_rect.height), math.pi * 1.15, math.pi * 1.85, 3)

    def _draw_avatar_grid(self, rects, selected, cell_size):
        for symbol, rect in zip(AVATARS, rects):
            if symbol == selected:
                pygame.draw.rect(self.screen, COLOR_SELECTED, rect, border_radius=10)
            else:
                pygame.draw.rect(self.screen, COLOR_UI_BAR_BG, rect, border_radius=10)
            self.draw_pet(self.screen, rect.center, symbol, size=int(cell_size * 0.6))

    def _draw_food(self, center, alpha=255):
        s = pygame.Surface((60, 60), pygame.SRCALPHA)
        pygame.draw.ellipse(s, COLOR_FOOD + (alpha,), (6, 6, 36, 30))
        pygame.draw.line(s, (240, 235, 220, alpha), (34, 30), (50, 48), 6)
        pygame.draw.circle(s, (240, 235, 220, alpha), (52, 50), 5)
        self.screen.blit(s, (center[0] - 30, center[1] - 30))

    def _render_onboarding(self):
        self._text("Choose your pet!", (SCREEN_WIDTH // 2, 12), font=self.big_font, color=COLOR_TEXT_BRIGHT, center=True)
        self._draw_avatar_grid(self.onboarding_avatar_rects, self.onboarding_symbol, 60)
        self._text_field(self.onboarding_name_rect, self.onboarding_name, True, "Pet name")
        self._button(self.btn_continue, "Continue", enabled=bool(self.onboarding_name.strip()))

    def _render_pet(self):
        level = self.engine.hunger_level
        hungry = self.engine.is_hungry
        self._text(self.pet.name, (SCREEN_WIDTH // 2, 8), font=self.big_font, color=COLOR_TEXT_BRIGHT, center=True)

        bar = pygame.Rect(SCREEN_WIDTH // 2 - 100, 42, 200, 20)
        pygame.draw.rect(self.screen, COLOR_UI_BAR_BG, bar, border_radius=10)
        width = int(bar.width * max(0, min(MAX_HUNGER, level)) / MAX_HUNGER)
        if width > 0:
            color = COLOR_FULL if level > LOW_HUNGER_THRESHOLD else COLOR_STARVING
            pygame.draw.rect(self.screen, color, (bar.x, bar.y, width, bar.height), border_radius=10)

        scale = 0.9 if hungry else 1.0
        angle = self.wiggle_angle()
        pet_surf = pygame.Surface((180, 180), pygame.SRCALPHA)
        self.draw_pet(pet_surf, (90, 90), self.pet.avatar_symbol, size=120, hungry=hungry)
        pet_surf = pygame.transform.rotozoom(pet_surf, -angle, scale)
        self.screen.blit(pet_surf, pet_surf.get_rect(center=self.pet_center))
        self._last_drawn_pet = {"symbol": self.pet.avatar_symbol, "scale": scale, "angle": angle, "hungry": hungry}

        pygame.draw.rect(self.screen, COLOR_BTN, self.btn_feed, border_radius=12)
        self._draw_food(self.btn_feed.center)
        if self.food_anim_elapsed is not None:
            frac = min(1.0, self.food_anim_elapsed / FOOD_ANIM_DURATION)
            x, y = self.btn_feed.center
            self._draw_food((x, y - int(FOOD_ANIM_RISE * frac)), alpha=int(255 * (1.0 - frac)))

    def _render_settings(self):
        self._text("Settings", (SCREEN_WIDTH // 2, 10), color=COLOR_TEXT_BRIGHT, center=True)
        self._text("Name", (40, 52))
        self._text_field(self.settings_name_rect, self.settings_name, self.editing_name, "Name")
        self._draw_avatar_grid(self.settings_avatar_rects, self.pet.avatar_symbol, 50)
        state = "On" if self.pet.notifications_enabled else "Off"
        self._button(self.btn_notifications, f"Notifications: {state}", selected=self.pet.notifications_enabled)

    def _render_tabs(self):
        self._button(self.tab_pet, "Pet", selected=self.screen_name == SCREEN_PET)
        self._button(self.tab_settings, "Settings", selected=self.screen_name == SCREEN_SETTINGS)

    def _render_hud(self):
        if not self.hud_text:
            return
        age = time.time() - self.hud_start
        if age >= self.hud_duration:
            self.hud_text = None
            return
        frac = max(0.0, min(1.0, age / self.hud_duration))
        surf = self.small_font.render(bmp_only(self.hud_text), True, COLOR_TEXT_BRIGHT)
        w, h = surf.get_width() + 20, surf.get_height() + 10
        bg = pygame.Surface((w, h), pygame.SRCALPHA)
        r, g, b, a = COLOR_BANNER_BG
        bg.fill((r, g, b, int(a * (1.0 - frac))))
        x = SCREEN_WIDTH // 2 - w // 2
        self.screen.blit(bg, (x, 70))
        surf.set_alpha(int(255 * (1.0 - frac)))
        self.screen.blit(surf, (x + 10, 75))

    def render(self):
        self.screen.fill(COLOR_BG)
        if self.screen_name == SCREEN_ONBOARDING:
            self._render_onboarding()
        else:
            if self.screen_name == SCREEN_PET:
                self._render_pet()
            else:
                self._render_settings()
            self._render_tabs()
        self._render_hud()

    # --- loop ---

    def step(self):
        """Process a single loop iteration (useful for headless tests). Returns False to stop."""
        for event in pygame.event.get():
            if not self.handle_event(event):
                return False
        now = time.time()
        dt = now - self._last_step_time
        self._last_step_time = now
        self._update_animations(dt)
        self.render()
        pygame.display.flip()
        self.clock.tick(self.fps)
        return True

    def shutdown(self):
        """Quitting counts as leaving the foreground; the next launch catches up."""
        self._stop_ticking()
        if self.pet is not None and not self.backgrounded:
            self.engine.enter_background()
        pygame.quit()

    def run(self):
        running = True
        while running:
            running = self.step()
        self.shutdown()


def main():
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    game = GameEngine()
    game.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
