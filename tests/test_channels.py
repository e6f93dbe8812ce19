import random
import threading
import typing

import pytest

import liveloop.channels


def test_auto_allocation_returns_lowest_free () -> None:

	"""Channels come out in ascending order."""

	manager = liveloop.channels.ChannelManager(4)

	assert [manager.allocate() for _ in range(4)] == [0, 1, 2, 3]


def test_exhaustion_and_recovery () -> None:

	"""The (N+1)-th allocation fails; releasing one makes room again."""

	manager = liveloop.channels.ChannelManager(16)

	for _ in range(16):
		manager.allocate()

	with pytest.raises(liveloop.channels.ResourceExhaustedError):
		manager.allocate()

	manager.release(7)

	assert manager.allocate() == 7


def test_explicit_allocation_twice_conflicts () -> None:

	"""Asking for the same channel twice without releasing it fails the second time."""

	manager = liveloop.channels.ChannelManager(16)

	assert manager.allocate(9) == 9

	with pytest.raises(liveloop.channels.ResourceConflictError):
		manager.allocate(9)


def test_explicit_allocation_is_skipped_by_auto_allocation () -> None:

	"""An explicitly taken channel is not handed out again."""

	manager = liveloop.channels.ChannelManager(3)

	manager.allocate(0)

	assert manager.allocate() == 1
	assert manager.allocate() == 2


def test_release_order_does_not_matter () -> None:

	"""After releases in any order, allocation is ascending again."""

	manager = liveloop.channels.ChannelManager(16)

	for _ in range(16):
		manager.allocate()

	released = [12, 3, 15, 0, 7]
	random.Random(4).shuffle(released)

	for channel in released:
		manager.release(channel)

	assert manager.free == [0, 3, 7, 12, 15]
	assert [manager.allocate() for _ in range(5)] == [0, 3, 7, 12, 15]


def test_reset_frees_everything () -> None:

	"""reset() discards every allocation."""

	manager = liveloop.channels.ChannelManager(4)
	manager.allocate()
	manager.allocate(3)

	manager.reset()

	assert manager.free == [0, 1, 2, 3]
	assert manager.allocated == []


def test_allocated_and_free_partition_the_pool () -> None:

	"""Every channel is either free or allocated, never both."""

	manager = liveloop.channels.ChannelManager(8)
	manager.allocate(5)
	manager.allocate()
	manager.allocate()

	assert manager.allocated == [0, 1, 5]
	assert sorted(manager.free + manager.allocated) == list(range(8))


def test_releasing_a_free_channel_is_rejected () -> None:

	"""A channel cannot be free twice."""

	manager = liveloop.channels.ChannelManager(4)

	with pytest.raises(ValueError):
		manager.release(2)

	assert manager.free == [0, 1, 2, 3]


def test_out_of_range_channels_are_rejected () -> None:

	"""Only ids inside the pool are accepted."""

	manager = liveloop.channels.ChannelManager(4)

	with pytest.raises(ValueError):
		manager.allocate(4)

	with pytest.raises(ValueError):
		manager.release(-1)


def test_exhaustion_applies_to_zero_free_channels_only () -> None:

	"""An explicit request for a taken channel conflicts even when others are free."""

	manager = liveloop.channels.ChannelManager(2)
	manager.allocate(0)

	with pytest.raises(liveloop.channels.ResourceConflictError):
		manager.allocate(0)

	assert manager.allocate() == 1


def test_errors_share_a_base_class () -> None:

	"""Both pool errors can be caught as ChannelError."""

	assert issubclass(liveloop.channels.ResourceExhaustedError, liveloop.channels.ChannelError)
	assert issubclass(liveloop.channels.ResourceConflictError, liveloop.channels.ChannelError)


def test_capacity_must_be_positive () -> None:

	with pytest.raises(ValueError):
		liveloop.channels.ChannelManager(0)


def test_concurrent_allocation_hands_out_each_channel_once () -> None:

	"""Threads allocating at once never receive the same channel."""

	manager = liveloop.channels.ChannelManager(16)
	taken: typing.List[int] = []
	taken_lock = threading.Lock()

	def grab () -> None:
		for _ in range(4):
			channel = manager.allocate()
			with taken_lock:
				taken.append(channel)

	threads = [threading.Thread(target=grab) for _ in range(4)]

	for thread in threads:
		thread.start()

	for thread in threads:
		thread.join()

	assert sorted(taken) == list(range(16))
	assert manager.free == []
