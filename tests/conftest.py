import os
import pathlib
import typing

import mido
import pytest

import liveloop.timer


class FakeMidiOut:

	"""Minimal MIDI output stub that records what it is sent."""

	def __init__ (self, name: str = "Dummy MIDI") -> None:

		self.name = name
		self.sent: typing.List[mido.Message] = []
		self.closed = False
		self.panicked = False

	def send (self, message: mido.Message) -> None:

		"""Record an outgoing MIDI message."""

		self.sent.append(message)


	def close (self) -> None:

		self.closed = True


	def panic (self) -> None:

		self.panicked = True


def _fake_get_output_names () -> list[str]:

	"""Return a fixed list of MIDI output names for tests."""

	return ["Dummy MIDI", "Other MIDI"]


# Module-level reference so tests can access the most recently opened FakeMidiOut.
_current_fake_output: typing.Optional[FakeMidiOut] = None


def _fake_open_output (name: str) -> FakeMidiOut:

	"""Return a fake MIDI output regardless of the name."""

	global _current_fake_output
	fake = FakeMidiOut(name)
	_current_fake_output = fake
	return fake


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Patch mido to use a fake MIDI output for all tests that need it."""

	monkeypatch.setattr(mido, "get_output_names", _fake_get_output_names)
	monkeypatch.setattr(mido, "open_output", _fake_open_output)


class RecordingSink:

	"""Sound Sink that records every event as a tuple."""

	def __init__ (self) -> None:

		self.events: typing.List[typing.Tuple[typing.Any, ...]] = []

	def note_on (self, channel: int, pitch: int, velocity: int) -> None:

		self.events.append(("note_on", channel, pitch, velocity))

	def note_off (self, channel: int, pitch: int, velocity: int) -> None:

		self.events.append(("note_off", channel, pitch, velocity))

	def program_change (self, channel: int, preset: int) -> None:

		self.events.append(("program_change", channel, preset))


class ManualClock:

	"""A clock that only moves when told to."""

	def __init__ (self, start: float = 100.0) -> None:

		self.time = start

	def __call__ (self) -> float:

		return self.time

	def advance (self, seconds: float) -> float:

		self.time += seconds
		return self.time


@pytest.fixture
def clock () -> ManualClock:

	return ManualClock()


@pytest.fixture
def scheduler (clock: ManualClock) -> liveloop.timer.Scheduler:

	"""A stopped scheduler on a manual clock; tests drive dispatch themselves."""

	return liveloop.timer.Scheduler(clock=clock)


@pytest.fixture
def sink () -> RecordingSink:

	return RecordingSink()


def write_script (path: pathlib.Path, code: str) -> None:

	"""Write a script and move its modification stamp forward, so every write counts as a change."""

	previous = path.stat().st_mtime_ns if path.exists() else None
	path.write_text(code, encoding="utf-8")

	if previous is not None:
		stat = path.stat()
		os.utime(path, ns=(stat.st_atime_ns, max(stat.st_mtime_ns, previous + 1_000_000_000)))
