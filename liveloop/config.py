import dataclasses
import logging
import os
import typing

import yaml

import liveloop.constants


logger = logging.getLogger(__name__)


@dataclasses.dataclass
class Settings:

	"""
	Process settings, read from a YAML file such as:

		```yaml
		script: song.py
		midi:
		  device_name: null    # null = first available output
		player:
		  bpm: 120
		  channels: 16
		monitor:
		  poll_interval: 0.5
		logging:
		  level: INFO
		```
	"""

	script: typing.Optional[str] = None
	device_name: typing.Optional[str] = None
	bpm: float = liveloop.constants.DEFAULT_BPM
	channels: int = liveloop.constants.MIDI_CHANNELS
	poll_interval: float = liveloop.constants.RELOAD_POLL_SECONDS
	log_level: str = "INFO"

	def __post_init__ (self) -> None:

		if self.bpm <= 0:
			raise ValueError("bpm must be positive")

		if not 1 <= self.channels <= liveloop.constants.MIDI_CHANNELS:
			raise ValueError(f"channels must be between 1 and {liveloop.constants.MIDI_CHANNELS}")

		if self.poll_interval <= 0:
			raise ValueError("poll_interval must be positive")

		if logging.getLevelName(self.log_level.upper()) not in (logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL):
			raise ValueError(f"Unknown log level: {self.log_level!r}")


def load_config (config_path: str = "config.yaml") -> Settings:

	"""
	Load settings from a YAML file. A missing file gives the defaults.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return Settings()

	with open(config_path, "r") as f:
		data = yaml.safe_load(f)

	if data is None:
		return Settings()

	if not isinstance(data, dict):
		raise ValueError(f"Config file {config_path} must contain a mapping")

	return Settings(
		script = data.get("script"),
		device_name = _section(data, "midi").get("device_name"),
		bpm = _section(data, "player").get("bpm", liveloop.constants.DEFAULT_BPM),
		channels = _section(data, "player").get("channels", liveloop.constants.MIDI_CHANNELS),
		poll_interval = _section(data, "monitor").get("poll_interval", liveloop.constants.RELOAD_POLL_SECONDS),
		log_level = _section(data, "logging").get("level", "INFO")
	)


def _section (data: typing.Dict[str, typing.Any], name: str) -> typing.Dict[str, typing.Any]:

	"""Return a top-level mapping from the config, treating an empty section as empty."""

	section = data.get(name) or {}

	if not isinstance(section, dict):
		raise ValueError(f"Config section {name!r} must be a mapping")

	return section
