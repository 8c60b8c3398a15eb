"""
Interactive Pygame Viewer for the Slime Mold Simulation

Controls:
  SPACE       Pause / Resume
  R           Respawn agents with the preset's spawn pattern
  C           Clear the trail
  P           Re-roll the steering parameters
  A           Toggle agent overlay
  1-9         Switch preset
  S           Save screenshot
  H           Toggle HUD overlay
  Q / ESC     Quit
  Mouse L     Perturb: push agents away, new parameters + trail colour
  Mouse R     Remove the perturbation

Resizing the window resizes the simulation field.
"""

import os
import time

import numpy as np
import pygame

from .presets import PRESET_ORDER, get_preset
from .simulator import SlimeSimulator, grid_extent

BG_COLOR = (0, 0, 0)


class Viewer:
    def __init__(self, width=1280, height=720, start_preset="network",
                 agent_count=None, seed=None, field_size=None):
        self.canvas_w = width
        self.canvas_h = height
        self.running = True
        self.show_hud = True
        self.fps_history = []

        grid_w, grid_h = field_size or grid_extent(width, height)
        self.sim = SlimeSimulator(start_preset, width=grid_w, height=grid_h,
                                  agent_count=agent_count, seed=seed)
        self.hud_font = None

    @property
    def paused(self):
        return self.sim.paused

    def _frame_surface(self, rgb):
        # pygame surfaces are (W, H, 3)
        return pygame.surfarray.make_surface(np.ascontiguousarray(rgb.transpose(1, 0, 2)))

    def _draw_hud(self, screen, fps):
        if not self.show_hud:
            return

        stats = self.sim.stats
        preset = get_preset(self.sim.preset_key)
        line = (f"Physarum - {preset['name']}  |  Gen: {stats['generation']:,}  |  "
                f"Agents: {self.sim.engine.agent_count:,}  |  "
                f"Coverage: {stats['coverage_pct']:.1f}%  |  "
                f"{self.sim.width}x{self.sim.height}  |  FPS: {fps:.0f}")
        if self.paused:
            line = "[PAUSED]  " + line

        padding = 6
        bg_height = 24
        bg_surface = pygame.Surface((self.canvas_w, bg_height), pygame.SRCALPHA)
        bg_surface.fill((0, 0, 0, 140))
        screen.blit(bg_surface, (0, 0))

        text_surface = self.hud_font.render(line, True, (210, 215, 225))
        screen.blit(text_surface, (padding + 4, padding))

    def _handle_mouse(self, event):
        mx, my = event.pos
        if event.button == 1:
            self.sim.pointer_at_pixel(mx, my, self.canvas_w, self.canvas_h)
        elif event.button == 3:
            self.sim.release_pointer()

    def _handle_drag(self, event):
        # Dragging moves the perturbation without re-rolling parameters
        if event.buttons[0]:
            mx, my = event.pos
            self.sim.pointer_at_pixel(mx, my, self.canvas_w, self.canvas_h,
                                      randomise=False)

    def _handle_resize(self, w, h):
        self.canvas_w = max(1, w)
        self.canvas_h = max(1, h)
        grid_w, grid_h = grid_extent(self.canvas_w, self.canvas_h)
        self.sim.resize(grid_w, grid_h)
        print(f"[Slime] Resized: {grid_w}x{grid_h} field")

    def _save_screenshot(self):
        screenshots_dir = os.path.join(
            os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))),
            "screenshots"
        )
        os.makedirs(screenshots_dir, exist_ok=True)
        timestamp = time.strftime("%Y%m%d_%H%M%S")
        path = os.path.join(screenshots_dir, f"slime_{self.sim.preset_key}_{timestamp}.png")
        latest_path = os.path.join(screenshots_dir, "latest.png")

        save_surface = self._frame_surface(self.sim.render())
        pygame.image.save(save_surface, path)
        pygame.image.save(save_surface, latest_path)
        print(f"[Slime] Screenshot saved: {path}")

    def run(self):
        """Main viewer loop."""
        pygame.init()

        screen = pygame.display.set_mode((self.canvas_w, self.canvas_h), pygame.RESIZABLE)
        pygame.display.set_caption("Slime Mold")
        clock = pygame.time.Clock()

        self.hud_font = pygame.font.SysFont("menlo", 13)

        last_time = time.time()

        while self.running:
            now = time.time()
            dt = min(now - last_time, 0.1)  # cap dt to avoid jumps
            last_time = now
            frame_start = now

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    self.running = False
                elif event.type == pygame.KEYDOWN:
                    self._handle_keydown(event)
                elif event.type == pygame.MOUSEBUTTONDOWN:
                    self._handle_mouse(event)
                elif event.type == pygame.MOUSEMOTION:
                    self._handle_drag(event)
                elif event.type == pygame.VIDEORESIZE:
                    screen = pygame.display.set_mode((event.w, event.h), pygame.RESIZABLE)
                    self._handle_resize(event.w, event.h)

            rgb = self.sim.step(dt)

            screen.fill(BG_COLOR)
            scaled = pygame.transform.smoothscale(self._frame_surface(rgb),
                                                  (self.canvas_w, self.canvas_h))
            screen.blit(scaled, (0, 0))

            # FPS
            frame_time = time.time() - frame_start
            self.fps_history.append(frame_time)
            if len(self.fps_history) > 30:
                self.fps_history.pop(0)
            avg_fps = 1.0 / max(np.mean(self.fps_history), 0.001)

            self._draw_hud(screen, avg_fps)

            pygame.display.flip()
            clock.tick(60)

        pygame.quit()

    def _handle_keydown(self, event):
        key = event.key

        if key in (pygame.K_q, pygame.K_ESCAPE):
            self.running = False

        elif key == pygame.K_SPACE:
            self.sim.paused = not self.sim.paused

        elif key == pygame.K_r:
            self.sim.engine.reseed()

        elif key == pygame.K_c:
            self.sim.engine.clear()

        elif key == pygame.K_p:
            self.sim.randomise_params()

        elif key == pygame.K_a:
            self.sim.renderer.show_agents = not self.sim.renderer.show_agents

        elif key == pygame.K_h:
            self.show_hud = not self.show_hud

        elif key == pygame.K_s:
            self._save_screenshot()

        # Preset selection (1-9)
        elif pygame.K_1 <= key <= pygame.K_9:
            idx = key - pygame.K_1
            if idx < len(PRESET_ORDER):
                self.sim.apply_preset(PRESET_ORDER[idx])
                print(f"[Slime] Preset: {PRESET_ORDER[idx]}")
