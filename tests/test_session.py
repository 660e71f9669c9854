"""
Tests for game sessions, command routing and end-to-end play-throughs
"""

import os
import random
import sys
import threading
import unittest

import numpy as np

sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))
sys.path.append(os.path.dirname(__file__))

from test_system import ConstantOutputModel, FakeDigitModel, FixedRandom, draw_diagonal

from tracing_games import commands
from tracing_games.config import Settings, default_game_catalog
from tracing_games.errors import UnknownGameError
from tracing_games.models import LoadState
from tracing_games.recognition import PlaceholderPolicy
from tracing_games.router import GameRouter, View
from tracing_games.session import GameSession

SETTINGS = Settings(model_timeout=5.0)


class CountingLoader:
    """Loader double that records every URI it is asked for."""

    def __init__(self, model=None, error=None):
        self.model = model
        self.error = error
        self.calls = []

    def __call__(self, uri):
        self.calls.append(uri)
        if self.error is not None:
            raise self.error
        return self.model


class TestGameSession(unittest.TestCase):
    """Test progression, scoring and feedback"""

    def setUp(self):
        self.games = default_game_catalog()

    def letter_session(self, draw=0.5):
        return GameSession(self.games['letter-trace'], settings=SETTINGS,
                           placeholder=PlaceholderPolicy(FixedRandom(draw)))

    def number_session(self, model):
        session = GameSession(self.games['number-trace'], loader=CountingLoader(model), settings=SETTINGS)
        session.model_handle.wait()
        return session

    def test_initial_state(self):
        session = self.letter_session()
        self.assertEqual(session.index, 0)
        self.assertEqual(session.score, 0)
        self.assertEqual(session.feedback, "")
        self.assertEqual(session.current_item, 'A')
        self.assertFalse(session.loading)
        self.assertFalse(session.complete)
        self.assertFalse(session.surface.has_ink())

    def test_retreat_at_start_is_noop(self):
        session = self.letter_session()
        self.assertFalse(session.retreat())
        self.assertEqual(session.index, 0)

    def test_advance_and_retreat_move_by_one(self):
        session = self.letter_session()
        self.assertTrue(session.advance())
        self.assertEqual(session.index, 1)
        self.assertTrue(session.advance())
        self.assertEqual(session.index, 2)
        self.assertTrue(session.retreat())
        self.assertEqual(session.index, 1)

    def test_advance_at_end_is_noop(self):
        session = self.letter_session()
        for _ in range(len(session.items) - 1):
            self.assertTrue(session.advance())
        self.assertTrue(session.complete)
        self.assertEqual(session.current_item, 'Z')
        self.assertFalse(session.advance())
        self.assertEqual(session.index, len(session.items) - 1)
        self.assertEqual(session.progress, 100.0)

    def test_index_change_clears_surface_and_feedback(self):
        session = self.letter_session()
        for move in (session.advance, session.retreat):
            draw_diagonal(session.surface)
            session.check_current_drawing()
            self.assertTrue(session.feedback)
            move()
            self.assertFalse(session.surface.has_ink())
            self.assertEqual(session.feedback, "")

    def test_noop_move_keeps_drawing(self):
        session = self.letter_session()
        draw_diagonal(session.surface)
        session.retreat()
        self.assertTrue(session.surface.has_ink())

    def test_begin_stroke_clears_feedback(self):
        session = self.letter_session()
        session.check_current_drawing()
        session.begin_stroke(10, 10)
        self.assertEqual(session.feedback, "")
        self.assertTrue(session.surface.has_ink())

    def test_placeholder_success(self):
        session = self.letter_session(draw=0.5)
        result = session.check_current_drawing()
        self.assertTrue(result.success)
        self.assertEqual(result.points, 50)
        self.assertFalse(result.used_model)
        self.assertEqual(session.score, 50)
        self.assertEqual(session.feedback, "✅ Great job! That's a A! (+50 points)")

    def test_placeholder_failure(self):
        session = self.letter_session(draw=0.1)
        result = session.check_current_drawing()
        self.assertFalse(result.success)
        self.assertEqual(result.points, 0)
        self.assertEqual(session.score, 0)
        self.assertEqual(session.feedback, "❌ Not quite! Try drawing A again!")

    def test_score_never_decreases(self):
        session = GameSession(self.games['letter-trace'], settings=SETTINGS,
                              placeholder=PlaceholderPolicy(random.Random(1234)))
        previous = 0
        for step in range(200):
            session.check_current_drawing()
            self.assertGreaterEqual(session.score, previous)
            previous = session.score
            if step % 7 == 0:
                session.advance()
            elif step % 11 == 0:
                session.retreat()

    def test_model_match_awards_confidence_points(self):
        model = FakeDigitModel(0, confidence=0.875)
        session = self.number_session(model)
        draw_diagonal(session.surface)
        result = session.check_current_drawing()
        self.assertTrue(result.success)
        self.assertTrue(result.used_model)
        self.assertEqual(result.label, '0')
        self.assertEqual(result.points, 88)
        self.assertEqual(session.score, 88)
        self.assertEqual(session.feedback, "✅ Perfect! That's a 0! (+88 points)")
        self.assertEqual(model.inputs[0].shape, (1, 28, 28, 1))

    def test_model_mismatch_names_recognized_label(self):
        session = self.number_session(FakeDigitModel(7))
        result = session.check_current_drawing()
        self.assertFalse(result.success)
        self.assertEqual(result.points, 0)
        self.assertEqual(result.label, '7')
        self.assertEqual(session.score, 0)
        self.assertEqual(session.feedback, "❌ That looks like a 7. Try drawing 0 again!")

    def test_shape_mismatch_becomes_feedback(self):
        session = self.number_session(FakeDigitModel(0, input_shape=(None, 32, 32, 1)))
        with self.assertLogs('tracing_games.session', level='ERROR'):
            result = session.check_current_drawing()
        self.assertFalse(result.success)
        self.assertEqual(result.points, 0)
        self.assertIn('Could not check', session.feedback)
        # The session is still playable
        self.assertTrue(session.advance())
        self.assertEqual(session.current_item, '1')

    def test_non_finite_model_output_becomes_feedback(self):
        session = self.number_session(ConstantOutputModel(np.full((1, 10), np.nan, dtype=np.float32)))
        with self.assertLogs('tracing_games.session', level='ERROR'):
            result = session.check_current_drawing()
        self.assertFalse(result.success)
        self.assertEqual(result.points, 0)
        self.assertEqual(session.score, 0)
        self.assertIn('Could not check', session.feedback)
        self.assertTrue(session.advance())

    def test_check_waits_for_pending_model(self):
        release = threading.Event()
        model = FakeDigitModel(0, confidence=0.9)

        def loader(uri):
            release.wait(5.0)
            return model

        session = GameSession(self.games['number-trace'], loader=loader, settings=SETTINGS)
        self.assertTrue(session.loading)
        threading.Timer(0.05, release.set).start()
        result = session.check_current_drawing()
        self.assertTrue(result.used_model)
        self.assertFalse(session.loading)
        self.assertEqual(session.score, 90)

    def test_model_game_requires_loader(self):
        with self.assertRaises(ValueError):
            GameSession(self.games['number-trace'], settings=SETTINGS)


class TestGameRouter(unittest.TestCase):
    """Test screen routing and command dispatch"""

    def setUp(self):
        self.games = default_game_catalog()
        self.loader = CountingLoader(FakeDigitModel(0))
        self.router = GameRouter(self.games, settings=SETTINGS, loader=self.loader,
                                 rng=random.Random(0))

    def test_starts_on_selection(self):
        self.assertIs(self.router.view, View.SELECTION)
        self.assertIsNone(self.router.session)
        self.assertIsNone(self.router.selected_game)

    def test_select_every_game(self):
        for game_id, config in self.games.items():
            with self.subTest(game_id=game_id):
                session = self.router.select_game(game_id)
                self.assertIs(self.router.view, View.GAME)
                self.assertIs(self.router.selected_game, config)
                self.assertEqual(len(session.items), len(config.items))
                self.assertEqual(session.index, 0)
                self.router.go_back()

    def test_unknown_game_raises_and_stays_on_selection(self):
        with self.assertRaises(UnknownGameError):
            self.router.select_game('shape-trace')
        self.assertIs(self.router.view, View.SELECTION)
        self.assertIsNone(self.router.session)

    def test_dispatch_unknown_game_sets_error_message(self):
        with self.assertLogs('tracing_games.router', level='WARNING'):
            result = self.router.dispatch(commands.SelectGame('shape-trace'))
        self.assertIsNone(result)
        self.assertIs(self.router.view, View.SELECTION)
        self.assertIn('shape-trace', self.router.error_message)

        self.router.dispatch(commands.SelectGame('letter-trace'))
        self.assertEqual(self.router.error_message, "")

    def test_back_discards_session(self):
        self.router.dispatch(commands.SelectGame('letter-trace'))
        self.router.dispatch(commands.Advance())
        self.router.dispatch(commands.Back())
        self.assertIs(self.router.view, View.SELECTION)
        self.assertIsNone(self.router.session)

        session = self.router.dispatch(commands.SelectGame('letter-trace'))
        self.assertEqual(session.index, 0)
        self.assertEqual(session.score, 0)

    def test_session_commands_without_game_are_ignored(self):
        with self.assertLogs('tracing_games.router', level='WARNING') as logs:
            self.assertIsNone(self.router.dispatch(commands.Check()))
        self.assertIn('no game is active', logs.output[0])

    def test_unsupported_command(self):
        with self.assertRaises(TypeError):
            self.router.dispatch("check")

    def test_dispatch_play_through(self):
        self.router.dispatch(commands.SelectGame('letter-trace'))
        session = self.router.session
        self.router.dispatch(commands.BeginStroke(100, 100))
        self.router.dispatch(commands.ExtendStroke(300, 300))
        self.router.dispatch(commands.EndStroke())
        self.assertTrue(session.surface.has_ink())

        self.router.dispatch(commands.Clear())
        self.assertFalse(session.surface.has_ink())

        self.router.dispatch(commands.BeginStroke(100, 100))
        result = self.router.dispatch(commands.Check())
        # random.Random(0) first draw is 0.844...
        self.assertTrue(result.success)
        self.assertEqual(result.points, 84)
        self.assertEqual(session.score, 84)

        self.router.dispatch(commands.Advance())
        self.assertEqual(session.current_item, 'B')
        self.assertFalse(session.surface.has_ink())
        self.router.dispatch(commands.Retreat())
        self.assertEqual(session.current_item, 'A')


class TestScenarios(unittest.TestCase):
    """End-to-end scenarios"""

    def test_number_trace_with_failed_model_uses_placeholder(self):
        model = FakeDigitModel(0)
        loader = CountingLoader(model, error=ConnectionError("simulated network error"))
        router = GameRouter(default_game_catalog(), settings=SETTINGS, loader=loader,
                            rng=random.Random(0))
        session = router.select_game('number-trace')
        with self.assertLogs('tracing_games.models', level='WARNING') as logs:
            self.assertIs(session.model_handle.wait(), LoadState.FAILED)
        self.assertIn('failed', logs.output[0])
        self.assertFalse(session.loading)

        draw_diagonal(session.surface)
        result = router.dispatch(commands.Check())
        self.assertFalse(result.used_model)
        self.assertEqual(model.inputs, [])
        self.assertEqual(loader.calls, ['cnn_model.h5'])

        # Still playable
        router.dispatch(commands.Advance())
        self.assertEqual(session.current_item, '1')

    def test_letter_trace_loads_immediately_without_fetch(self):
        loader = CountingLoader(FakeDigitModel(0))
        router = GameRouter(default_game_catalog(), settings=SETTINGS, loader=loader)
        session = router.select_game('letter-trace')
        self.assertFalse(session.loading)
        self.assertIsNone(session.model_handle)
        self.assertIsNone(session.model)
        self.assertEqual(loader.calls, [])

    def test_number_trace_with_model_scores_digits(self):
        model = FakeDigitModel(0, confidence=0.95)
        router = GameRouter(default_game_catalog(), settings=SETTINGS, loader=CountingLoader(model))
        session = router.select_game('number-trace')
        session.model_handle.wait()
        router.dispatch(commands.BeginStroke(200, 100))
        router.dispatch(commands.ExtendStroke(200, 300))
        router.dispatch(commands.EndStroke())
        result = router.dispatch(commands.Check())
        self.assertTrue(result.used_model)
        self.assertEqual(result.points, 95)

        router.dispatch(commands.Advance())
        result = router.dispatch(commands.Check())
        self.assertFalse(result.success)
        self.assertEqual(session.score, 95)


if __name__ == "__main__":
    unittest.main()
