"""
Unit tests for the job status state machine.
"""
import unittest

from portrait_studio.services.jobs.state import (
    IllegalTransition,
    JobStatus,
    can_transition,
    is_terminal,
    transition,
)


class TestJobState(unittest.TestCase):
    def test_processing_can_finish(self):
        self.assertEqual(transition(JobStatus.PROCESSING, JobStatus.COMPLETED), JobStatus.COMPLETED)
        self.assertEqual(transition("processing", "failed"), JobStatus.FAILED)

    def test_terminal_states_reject_everything(self):
        for current in (JobStatus.COMPLETED, JobStatus.FAILED):
            for target in JobStatus:
                with self.subTest(current=current, target=target):
                    self.assertFalse(can_transition(current, target))
                    with self.assertRaises(IllegalTransition):
                        transition(current, target)

    def test_completed_back_to_processing(self):
        with self.assertRaises(IllegalTransition) as ctx:
            transition("completed", "processing")
        self.assertIn("completed -> processing", str(ctx.exception))

    def test_processing_to_processing_is_illegal(self):
        self.assertFalse(can_transition(JobStatus.PROCESSING, JobStatus.PROCESSING))

    def test_is_terminal(self):
        self.assertFalse(is_terminal("processing"))
        self.assertTrue(is_terminal("completed"))
        self.assertTrue(is_terminal(JobStatus.FAILED))

    def test_unknown_status(self):
        with self.assertRaises(ValueError):
            transition("processing", "cancelled")
