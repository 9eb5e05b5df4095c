import cv2

import mediapipe as mp


class Hands:
    """
    MediaPipe hands wrapper.

    process(frame) returns one observation per detected hand:
      [[(x, y, z) * 21], ...]   normalized image coords, MediaPipe order

    and [] when no hand is seen, so the classifier still runs and the field
    relaxes back to its formation.
    """

    def __init__(self, max_hands=2, det_conf=0.5, track_conf=0.5):
        self.max_hands = max_hands
        self.mp_hands = mp.solutions.hands
        self.hands = self.mp_hands.Hands(
            static_image_mode=False,
            max_num_hands=max_hands,
            model_complexity=1,
            min_detection_confidence=float(det_conf),
            min_tracking_confidence=float(track_conf),
        )

    def process(self, frame_bgr):
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)

        # Fixes NORM_RECT without IMAGE_DIMENSIONS warning
        self.hands._image_width, self.hands._image_height = frame_bgr.shape[1], frame_bgr.shape[0]  # type: ignore[attr-defined]

        res = self.hands.process(frame_rgb)

        if not res.multi_hand_landmarks:
            return []

        return [
            [(lm.x, lm.y, lm.z) for lm in hand_lms.landmark]
            for hand_lms in res.multi_hand_landmarks
        ]

    def close(self):
        self.hands.close()
