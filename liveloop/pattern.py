import typing


DIGITS = "0123456789"
REST_MARKERS = ("-", "=")
SUSTAIN_MARKER = "="

Cell = typing.Tuple[typing.Optional[int], int]


class ConfigurationError (ValueError):
	pass


class Pattern:

	"""
	A cyclic rhythm parsed from a compact string.

	Each character opens a cell: a digit is a scale-degree offset above
	``base``, ``-`` (or a leading ``=``) is a rest, and any other character is
	a hit on ``base`` itself. An ``=`` following an open cell ties onto it,
	adding one to its duration. Whitespace separates measures and is otherwise
	ignored.

	Indexing wraps, so a pattern can be read with an ever-increasing tick count:

		```python
		riff = Pattern(60, "1=2 -==3")

		riff[0]   # (61, 2)
		riff[1]   # (62, 1)
		riff[2]   # (None, 3)  - a rest lasting three ticks
		riff[4]   # (61, 2)    - wrapped back to the start
		```
	"""

	def __init__ (self, base: int, string: str) -> None:

		"""
		Parse ``string`` into cells. Raises ``ConfigurationError`` if it contains none.
		"""

		if not isinstance(string, str):
			raise ConfigurationError(f"Pattern must be a string, got {type(string).__name__}")

		self.base = base
		self.source = string
		self.cells: typing.Tuple[Cell, ...] = tuple(_parse(string))

		if not self.cells:
			raise ConfigurationError(f"Pattern {string!r} has no cells")

	def __repr__ (self) -> str:

		return f"Pattern({self.base!r}, {self.source!r})"

	def __len__ (self) -> int:

		return len(self.cells)

	def __getitem__ (self, index: int) -> typing.Tuple[typing.Optional[int], int]:

		"""
		Return ``(pitch, duration)`` for the cell at ``index``, or ``(None, duration)`` for a rest.
		"""

		offset, duration = self.cells[index % len(self.cells)]

		if offset is None:
			return None, duration

		return self.base + offset, duration

	@property
	def total_duration (self) -> int:

		"""Ticks taken by one full cycle of the pattern."""

		return sum(duration for _, duration in self.cells)


def _parse (string: str) -> typing.List[Cell]:

	"""
	Scan the non-whitespace characters left to right, folding ties into the cell before them.
	"""

	characters = [character for character in string if not character.isspace()]
	cells: typing.List[Cell] = []
	position = 0

	while position < len(characters):

		character = characters[position]

		offset: typing.Optional[int]

		if character in REST_MARKERS:
			offset = None
		elif character in DIGITS:
			offset = int(character)
		else:
			offset = 0

		position += 1
		duration = 1

		while position < len(characters) and characters[position] == SUSTAIN_MARKER:
			duration += 1
			position += 1

		cells.append((offset, duration))

	return cells
