"""
Export of the digit model used by the number tracing game.

Trains a small CNN on MNIST and saves it where ``KerasModelLoader`` looks
for ``cnn_model.h5``. The game feeds the model black ink on white divided by
255, with no inversion, while MNIST is white ink on black, so the training
images are inverted first.
"""

from __future__ import annotations

import logging
import os
from typing import Optional, Tuple

import numpy as np

from . import constants
from .config import Settings
from .models import _ensure_tf, keras

logger = logging.getLogger(__name__)


def to_game_intensity(images: np.ndarray) -> np.ndarray:
    """Map uint8 white-on-black digits to the game's ``[N, 28, 28, 1]`` black-on-white floats."""
    images = np.asarray(images, dtype=np.float32)
    if images.ndim == 3:
        images = images[..., np.newaxis]
    return 1.0 - images / 255.0


def build_digit_model(input_shape: Tuple[int, int, int] = constants.MODEL_INPUT_SHAPE[1:],
                      num_classes: int = len(constants.DIGIT_LABELS)):
    """Build and compile the CNN: two convolutional blocks and a dense head."""
    _ensure_tf()
    layers = keras.layers
    model = keras.Sequential([
        layers.Input(shape=input_shape),
        layers.Conv2D(32, (3, 3), activation='relu'),
        layers.BatchNormalization(),
        layers.Conv2D(32, (3, 3), activation='relu'),
        layers.MaxPooling2D((2, 2)),
        layers.Dropout(0.25),

        layers.Conv2D(64, (3, 3), activation='relu'),
        layers.BatchNormalization(),
        layers.Conv2D(64, (3, 3), activation='relu'),
        layers.MaxPooling2D((2, 2)),
        layers.Dropout(0.25),

        layers.Flatten(),
        layers.Dense(256, activation='relu'),
        layers.Dropout(0.5),
        layers.Dense(num_classes, activation='softmax'),
    ])
    model.compile(optimizer='adam', loss='sparse_categorical_crossentropy', metrics=['accuracy'])
    return model


def load_mnist():
    """Return ``(x_train, y_train, x_test, y_test)`` from ``keras.datasets``, in game intensity."""
    _ensure_tf()
    (x_train, y_train), (x_test, y_test) = keras.datasets.mnist.load_data()
    return to_game_intensity(x_train), y_train, to_game_intensity(x_test), y_test


def default_output_path(settings: Optional[Settings] = None) -> str:
    settings = settings or Settings()
    return os.path.join(settings.model_dirs[0], constants.DIGIT_MODEL_FILENAME)


def train_digit_model(output_path: Optional[str] = None, epochs: int = 5,
                      batch_size: int = 128) -> Tuple[str, float]:
    """Train on MNIST, save the model and return ``(path, test_accuracy)``."""
    output_path = output_path or default_output_path()
    x_train, y_train, x_test, y_test = load_mnist()
    logger.info("Training digit model on %d images for up to %d epochs", len(x_train), epochs)

    model = build_digit_model()
    callbacks = [
        keras.callbacks.EarlyStopping(patience=2, restore_best_weights=True),
        keras.callbacks.ReduceLROnPlateau(factor=0.5, patience=1),
    ]
    model.fit(x_train, y_train, batch_size=batch_size, epochs=epochs,
              validation_split=0.1, callbacks=callbacks, verbose=1)

    _, accuracy = model.evaluate(x_test, y_test, verbose=0)
    logger.info("Digit model test accuracy: %.4f", accuracy)

    output_dir = os.path.dirname(os.path.abspath(output_path))
    os.makedirs(output_dir, exist_ok=True)
    model.save(output_path)
    logger.info("Saved digit model to %s", output_path)
    return output_path, float(accuracy)
