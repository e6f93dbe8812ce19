import pytest

import conftest
import liveloop.channels
import liveloop.output
import liveloop.timer


@pytest.fixture
def output (sink: conftest.RecordingSink, scheduler: liveloop.timer.Scheduler) -> liveloop.output.Output:

	return liveloop.output.Output(sink, scheduler, bpm=120)


def test_recording_sink_satisfies_protocol (sink: conftest.RecordingSink) -> None:

	assert isinstance(sink, liveloop.output.SoundSink)


def test_instrument_takes_lowest_channel_and_selects_preset (output: liveloop.output.Output, sink: conftest.RecordingSink) -> None:

	piano = output.instrument(0)
	bass = output.instrument(33)

	assert (piano.channel, bass.channel) == (0, 1)
	assert sink.events == [("program_change", 0, 0), ("program_change", 1, 33)]


def test_instrument_on_explicit_channel (output: liveloop.output.Output) -> None:

	drums = output.instrument(0, channel=9)

	assert drums.channel == 9

	with pytest.raises(liveloop.channels.ResourceConflictError):
		output.instrument(0, channel=9)


def test_running_out_of_channels (sink: conftest.RecordingSink, scheduler: liveloop.timer.Scheduler) -> None:

	output = liveloop.output.Output(sink, scheduler, channels=2)
	output.instrument(0)
	output.instrument(0)

	with pytest.raises(liveloop.channels.ResourceExhaustedError):
		output.instrument(0)


def test_release_and_reset_return_channels (output: liveloop.output.Output) -> None:

	"""A script that resets on every load can allocate the same channels again."""

	first = output.instrument(0)
	output.instrument(0)

	output.release(first)
	assert output.instrument(0).channel == 0

	output.reset()
	assert output.instrument(0).channel == 0


@pytest.mark.asyncio
async def test_play_schedules_note_on_and_off (output: liveloop.output.Output, sink: conftest.RecordingSink, clock: conftest.ManualClock) -> None:

	on_event, off_event = output.play(3, 64, 0.25, velocity=90)

	assert on_event.fire_time == clock.time
	assert off_event.fire_time == pytest.approx(clock.time + 0.25)

	await output.timer.dispatch()
	assert sink.events == [("note_on", 3, 64, 90)]

	clock.advance(0.3)
	await output.timer.dispatch()
	assert sink.events[-1] == ("note_off", 3, 64, 90)


@pytest.mark.asyncio
async def test_play_at_a_later_time (output: liveloop.output.Output, sink: conftest.RecordingSink, clock: conftest.ManualClock) -> None:

	output.play(0, 60, 0.1, time=clock.time + 1.0)

	await output.timer.dispatch()
	assert sink.events == []

	clock.advance(1.05)
	await output.timer.dispatch()
	assert sink.events == [("note_on", 0, 60, 100)]


def test_bpm_sets_interval_and_timer (output: liveloop.output.Output, scheduler: liveloop.timer.Scheduler) -> None:

	assert output.interval == pytest.approx(0.5)
	assert output.timer is scheduler.get(0.5 / 10)

	output.bpm = 60

	assert output.interval == pytest.approx(1.0)
	assert output.timer is scheduler.get(1.0 / 10)


def test_bpm_must_be_positive (output: liveloop.output.Output) -> None:

	with pytest.raises(ValueError):
		output.bpm = 0

	assert output.bpm == 120


def test_pattern_subscriber_plays_cells_with_gap (output: liveloop.output.Output) -> None:

	"""Notes last their cell's beats less a tenth of a beat; rests are silent."""

	piano = output.instrument(0)
	bang = piano.pattern(60, "1=-")

	events = output.timer._queue

	bang(0)
	assert len(events) == 2
	on_event, off_event = events
	assert off_event.fire_time - on_event.fire_time == pytest.approx(0.5 * 2 - 0.05)

	bang(1)
	assert len(events) == 2

	bang(2)
	assert len(events) == 4


def test_pattern_subscriber_follows_tempo_changes (output: liveloop.output.Output) -> None:

	piano = output.instrument(0)
	bang = piano.pattern(48, "0")

	output.bpm = 60
	bang(0)

	on_event, off_event = output.timer._queue
	assert off_event.fire_time - on_event.fire_time == pytest.approx(1.0 - 0.1)


def test_pattern_with_no_cells_is_rejected (output: liveloop.output.Output) -> None:

	with pytest.raises(ValueError):
		output.instrument(0).pattern(60, "  ")
