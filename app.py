# app.py - ACOUSTIC LEVITATION SCULPTOR
import logging
import os
import time

import cv2
import numpy as np

from driver import Simulation
from gestures import landmark_xy
from params import Params
from renderer import Renderer3D

WINDOW_NAME = "Acoustic Levitation Sculptor"

VIEW_SIZE = 480
ORBIT_STEP = 0.08
ZOOM_STEP = 0.1

ENABLE_VOICE = True
USE_TAICHI = os.environ.get("LEVITATE_TAICHI", "0") == "1"


def configure_logging(level="INFO"):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def open_camera(max_index=6):
    for i in range(max_index):
        cap = cv2.VideoCapture(i)
        if cap.isOpened():
            ok, _ = cap.read()
            if ok:
                print(f"✅ Using camera index: {i}")
                return cap
        cap.release()
    raise RuntimeError(f"❌ No working camera found (0–{max_index-1}).")


def _init_tracker():
    try:
        from hands import Hands
    except ImportError:
        print("⚠️  mediapipe not installed - running without hand tracking")
        return None
    try:
        return Hands(max_hands=2)
    except Exception as e:
        print(f"⚠️  Hand tracker init failed: {e}")
        return None


def _init_voice():
    if not ENABLE_VOICE:
        return None

    try:
        from voice_cmd import VoiceCommands

        model_path = "models/vosk-model-small-en-us-0.15"
        if not os.path.exists(model_path):
            print("⚠️  Voice model not found. Download from:")
            print("   https://alphacephei.com/vosk/models")
            print("   Extract to models/")
            return None

        voice = VoiceCommands(model_path=model_path, wake_word="robin", arm_seconds=2.0)
        voice.start()
        print("✅ Voice commands enabled (wake word: 'robin')")
        return voice
    except ImportError:
        print("⚠️  vosk/sounddevice not installed - voice disabled")
        return None
    except Exception as e:
        print(f"⚠️  Voice init failed: {e}")
        return None


def _make_simulation(params):
    if not USE_TAICHI:
        return Simulation(params)
    from field import ParticleField
    from sim_taichi import TaichiIntegrator

    field = ParticleField.from_params(params)
    return Simulation(params, integrator=TaichiIntegrator(field.count, params=params), field=field)


def apply_command(sim, renderer, cmd):
    """Keyboard and voice share one command vocabulary."""
    if cmd in ("energy", "toggle energy"):
        sim.toggle_high_energy()
    elif cmd == "energy on":
        sim.set_high_energy(True)
    elif cmd == "energy off":
        sim.set_high_energy(False)
    elif cmd == "reset":
        sim.reset()
    elif cmd == "orbit left":
        renderer.orbit(d_yaw=-ORBIT_STEP)
    elif cmd == "orbit right":
        renderer.orbit(d_yaw=ORBIT_STEP)
    elif cmd == "orbit up":
        renderer.orbit(d_pitch=ORBIT_STEP)
    elif cmd == "orbit down":
        renderer.orbit(d_pitch=-ORBIT_STEP)
    elif cmd == "zoom in":
        renderer.set_zoom(renderer.zoom + ZOOM_STEP)
    elif cmd == "zoom out":
        renderer.set_zoom(renderer.zoom - ZOOM_STEP)
    elif cmd == "zoom reset":
        renderer.set_zoom(1.0)


KEYMAP = {
    ord('h'): "energy", ord('H'): "energy",
    ord('r'): "reset", ord('R'): "reset",
    ord('a'): "orbit left", ord('d'): "orbit right",
    ord('w'): "orbit up", ord('s'): "orbit down",
    ord('+'): "zoom in", ord('='): "zoom in", ord('-'): "zoom out",
    ord('0'): "zoom reset",
}


def _draw_hands(frame, hands, params):
    """Mark the keypoints the gestures read (wrist, index tip, palm)."""
    h, w = frame.shape[:2]
    for lms in hands:
        for idx in (params.wrist, params.index_tip, params.palm_ref):
            pt = landmark_xy(lms, idx)
            if pt is not None:
                cv2.circle(frame, (int(pt[0] * w), int(pt[1] * h)), 6, (0, 255, 0), 2, cv2.LINE_AA)


def _status_dot(frame, tracking):
    # green = hands seen, red = none
    color = (0, 255, 0) if tracking else (0, 0, 255)
    h, w = frame.shape[:2]
    cv2.rectangle(frame, (w - 34, h - 34), (w - 12, h - 12), color, -1)
    cv2.rectangle(frame, (w - 34, h - 34), (w - 12, h - 12), (255, 255, 255), 2)


def compose(camera_frame, view):
    h = view.shape[0]
    scale = h / float(camera_frame.shape[0])
    cam = cv2.resize(camera_frame, (int(camera_frame.shape[1] * scale), h))
    return np.hstack([cam, view])


def main():
    configure_logging(os.environ.get("LEVITATE_LOG", "INFO"))

    params = Params()
    sim = _make_simulation(params)
    renderer = Renderer3D(VIEW_SIZE, VIEW_SIZE)

    cap = open_camera()
    tracker = _init_tracker()
    voice = _init_voice()

    cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)

    prev = time.time()
    fps_smooth = 0.0

    print("\n" + "="*60)
    print("🚀 ACOUSTIC LEVITATION SCULPTOR")
    print("="*60)
    print(f"\n   {sim.field.count} particles")
    print("\n📋 CONTROLS:")
    print("   H - Toggle high-energy mode")
    print("   R - Reset formation")
    print("   A/D W/S - Orbit view, +/- zoom")
    print("   ESC - Exit")

    if voice:
        print("\n🎤 VOICE COMMANDS:")
        print("   Say 'robin' then:")
        print("   - 'energy' / 'energy on' / 'energy off'")
        print("   - 'reset'")

    print("\n✨ GESTURES:")
    print("   Two hands stacked, pulled apart: EXTRUDE")
    print("   Two palms together: SNAP")
    print("   One hand, index swept sideways: CURVE")
    print("\n" + "="*60 + "\n")

    try:
        while True:
            ok, frame = cap.read()
            if not ok:
                break

            frame = cv2.flip(frame, 1)

            now = time.time()
            dt = max(1e-6, now - prev)
            prev = now
            fps = 1.0 / dt
            fps_smooth = fps if fps_smooth == 0 else 0.9 * fps_smooth + 0.1 * fps

            hands = tracker.process(frame) if tracker is not None else []
            sim.advance(hands, dt)

            _draw_hands(frame, hands, params)
            _status_dot(frame, bool(hands))

            view = renderer.render(sim.snapshot(), high_energy=sim.high_energy, gestures=sim.last_gestures)
            composed = compose(frame, view)

            fps_text = f"FPS: {fps_smooth:5.1f}"
            cv2.putText(composed, fps_text, (12, composed.shape[0] - 12), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 245, 0), 3, cv2.LINE_AA)
            cv2.putText(composed, fps_text, (12, composed.shape[0] - 12), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 128), 2, cv2.LINE_AA)

            cv2.imshow(WINDOW_NAME, composed)

            key = cv2.waitKey(1) & 0xFF
            if key == 27:
                break
            cmd = KEYMAP.get(key)
            if cmd:
                apply_command(sim, renderer, cmd)

            if voice:
                cmd = voice.pop_command()
                if cmd:
                    print(f"🎤 Voice command: {cmd}")
                    apply_command(sim, renderer, cmd)
    finally:
        cap.release()
        cv2.destroyAllWindows()
        if tracker is not None:
            tracker.close()
        if voice:
            voice.stop()
        sim.close()

    print("\n✅ Sculptor shutdown complete")


if __name__ == "__main__":
    main()
