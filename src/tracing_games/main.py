"""
Main entry point for the tracing games.
Provides the command-line interface and the GUI launcher.
"""

import argparse
import logging
import random
import sys

import cv2

from .config import Settings, default_game_catalog, load_game_catalog
from .errors import ConfigError, GameError, UnknownGameError
from .router import GameRouter

logger = logging.getLogger(__name__)


def list_games(games):
    """Print the game catalog"""
    for game in games.values():
        model = game.model_uri or "placeholder scoring"
        print(f"{game.id:15} {game.name} - {game.description}")
        print(f"{'':15} {len(game.items)} items, recognition: {model}")


def check_image(router, image_path, game_id, item):
    """Score a drawing stored in an image file against one item of a game"""
    image = cv2.imread(image_path)
    if image is None:
        print(f"Error: Could not load image from {image_path}")
        return 1
    snapshot = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)

    session = router.select_game(game_id)
    if item not in session.items:
        print(f"Error: {item!r} is not an item of {game_id} ({''.join(session.items)})")
        return 1
    session.index = session.items.index(item)

    if session.model_handle is not None:
        print(f"Waiting for recognition model {session.config.model_uri} ...")
        session.model_handle.wait()

    result = session.check_current_drawing(snapshot)
    print(f"Processing image: {image_path}")
    print(f"Target: {item}  ({'model' if result.used_model else 'placeholder scoring'})")
    if result.label is not None:
        print(f"Recognized: {result.label} (confidence: {result.confidence:.3f})")
    print(result.feedback)
    print(f"Score: {session.score}")
    return 0 if result.success else 2


def train_model(output_path, epochs):
    """Train the digit model and save it where the number game looks for it"""
    from .training import train_digit_model
    try:
        path, accuracy = train_digit_model(output_path, epochs=epochs)
    except ImportError as e:
        print(f"Error: {e}")
        return 1
    print(f"Digit model saved to '{path}' (test accuracy: {accuracy:.4f})")
    return 0


def check_dependencies():
    """Check if all required dependencies are installed"""
    required_packages = ['cv2', 'numpy', 'PIL', 'matplotlib', 'tkinter', 'tensorflow']
    missing_packages = []

    for package in required_packages:
        try:
            __import__(package)
            print(f"✓ {package}")
        except ImportError:
            missing_packages.append(package)
            print(f"✗ {package} - MISSING")

    if missing_packages:
        print(f"\nMissing packages: {missing_packages}")
        print("Please install missing packages using: pip install <package_name>")
        return False
    print("\nAll dependencies are installed!")
    return True


def build_parser():
    parser = argparse.ArgumentParser(description="Tracing games: draw letters and numbers")
    parser.add_argument('--gui', action='store_true', help='Launch GUI application (default)')
    parser.add_argument('--list-games', action='store_true', help='List available games')
    parser.add_argument('--games', type=str, help='JSON file with the game catalog')
    parser.add_argument('--check-image', type=str, help='Score a drawing stored in an image file')
    parser.add_argument('--game', type=str, default='number-trace', help='Game used with --check-image')
    parser.add_argument('--item', type=str, help='Target item used with --check-image')
    parser.add_argument('--model-timeout', type=float, help='Seconds to wait for the recognition model')
    parser.add_argument('--seed', type=int, help='Seed for placeholder scoring')
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], help='Logging level')
    parser.add_argument('--check-deps', action='store_true', help='Check if all dependencies are installed')
    parser.add_argument('--train-model', action='store_true',
                        help='Train the digit model on MNIST and save it for the number game')
    parser.add_argument('--epochs', type=int, default=5, help='Training epochs used with --train-model')
    parser.add_argument('--model-output', type=str, help='Where --train-model saves the model')
    return parser


def main(argv=None):
    """Main function with command line interface"""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.check_deps:
        return 0 if check_dependencies() else 1

    if args.train_model:
        return train_model(args.model_output, args.epochs)

    try:
        games = load_game_catalog(args.games) if args.games else default_game_catalog()
        logger.debug("Game catalog: %s", ", ".join(games))
        settings = Settings.from_env(model_timeout=args.model_timeout)
    except ConfigError as e:
        print(f"Error: {e}")
        return 1

    if args.list_games:
        list_games(games)
        return 0

    rng = random.Random(args.seed) if args.seed is not None else None
    router = GameRouter(games, settings=settings, rng=rng)

    if args.check_image:
        if not args.item:
            parser.error("--check-image requires --item")
        try:
            return check_image(router, args.check_image, args.game, args.item)
        except UnknownGameError as e:
            print(f"Error: {e}. Available games: {', '.join(games)}")
            return 1
        except GameError as e:
            print(f"Error checking image: {e}")
            return 1

    print("Launching GUI application...")
    from .gui import run
    run(router)
    return 0


if __name__ == "__main__":
    sys.exit(main())
