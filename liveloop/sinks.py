"""Concrete Sound Sinks.

``MidoSink`` sends events to a MIDI output port through mido. ``LogSink``
only logs them, which is useful when no MIDI device is attached.
"""

import logging
import typing

import mido


logger = logging.getLogger(__name__)


class MidoSink:

	"""
	Sends note and program events to a mido output port.
	"""

	def __init__ (self, port: typing.Any, name: typing.Optional[str] = None) -> None:

		self.port = port
		self.name = name

	def __repr__ (self) -> str:

		return f"MidoSink({self.name!r})"

	def note_on (self, channel: int, pitch: int, velocity: int) -> None:

		logger.debug(f"NOTE ON  {channel} {pitch} {velocity}")
		self.port.send(mido.Message("note_on", channel=channel, note=pitch, velocity=velocity))

	def note_off (self, channel: int, pitch: int, velocity: int) -> None:

		logger.debug(f"NOTE OFF {channel} {pitch} {velocity}")
		self.port.send(mido.Message("note_off", channel=channel, note=pitch, velocity=velocity))

	def program_change (self, channel: int, preset: int) -> None:

		self.port.send(mido.Message("program_change", channel=channel, program=preset))

	def panic (self) -> None:

		"""Silence every channel."""

		self.port.panic()

	def close (self) -> None:

		self.port.close()


class LogSink:

	"""
	Logs every event at info level and sends nothing.
	"""

	def note_on (self, channel: int, pitch: int, velocity: int) -> None:

		logger.info(f"NOTE ON  {channel} {pitch} {velocity}")

	def note_off (self, channel: int, pitch: int, velocity: int) -> None:

		logger.info(f"NOTE OFF {channel} {pitch} {velocity}")

	def program_change (self, channel: int, preset: int) -> None:

		logger.info(f"PROGRAM  {channel} {preset}")


def open_output (device_name: typing.Optional[str] = None) -> typing.Optional[MidoSink]:

	"""
	Open a MIDI output device and wrap it in a :class:`MidoSink`.

	If ``device_name`` is given, that device is opened. Otherwise the first
	available output is used. Returns None (and logs why) when no device can
	be opened.
	"""

	try:
		outputs = mido.get_output_names()
		logger.info(f"Available MIDI outputs: {outputs}")

		if not outputs:
			logger.error("No MIDI output devices found.")
			return None

		if device_name is None:
			device_name = outputs[0]

			if len(outputs) > 1:
				logger.info(f"Several MIDI outputs found - using '{device_name}'")

		elif device_name not in outputs:
			logger.error(
				f"MIDI output device '{device_name}' not found. "
				f"Available devices: {outputs}"
			)
			return None

		port = mido.open_output(device_name)
		logger.info(f"Opened MIDI output: {device_name}")

		return MidoSink(port, name=device_name)

	except Exception as e:
		logger.error(f"Failed to open MIDI output: {e}")
		return None
