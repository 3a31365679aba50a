### RaptorEngine internal types - route slices, legs, labels

import itertools as it, operator as op, functools as ft
from collections import namedtuple
import math

import attr

from .. import utils as u


SliceStop = namedtuple('SliceStop', 'stopidx stop node cumulative_time')

@u.attr_struct(repr=False, frozen=True)
class RouteSlice:
	'''Contiguous [start, end) stop range of a canonical Route,
			re-based so that first stop of the slice is reached at initial_time.
		Stop arrays are never copied, all transformations return new slices.'''
	route = u.attr_init()
	start = u.attr_init(0)
	end = u.attr_init(None)
	initial_time = u.attr_init(0)

	def __attrs_post_init__(self):
		if self.end is None: object.__setattr__(self, 'end', len(self.route))
		assert 0 <= self.start <= self.end <= len(self.route), [self.start, self.end]

	def _abs_index(self, n):
		if n < 0: n += len(self)
		if not 0 <= n < len(self): raise IndexError(n)
		return self.start + n

	def cumulative_time_at(self, n):
		'Cumulative time for stop with slice-relative index n.'
		offsets = self.route.offsets
		return self.initial_time + offsets[self._abs_index(n)] - offsets[self.start]

	def stop_index(self, node, exclude_non_halts=False):
		'Slice-relative index of the first stop at node, or None.'
		n = self.route.stop_index(node, exclude_non_halts, self.start, self.end)
		return None if n is None else n - self.start

	def slice_from(self, n):
		'Slice starting at relative index n, which gets reached at initial_time.'
		return attr.evolve(self, start=self._abs_index(n))

	def slice_to(self, n):
		'Slice ending at (and including) relative index n.'
		return attr.evolve(self, end=self._abs_index(n) + 1)

	def slice_beginning_at(self, node):
		n = self.stop_index(node)
		return self if n is None else self.slice_from(n)

	def slice_ending_at(self, node):
		n = self.stop_index(node)
		return self if n is None else self.slice_to(n)

	def with_initial_time(self, initial_time):
		return attr.evolve(self, initial_time=initial_time)

	@property
	def id(self): return self.route.id

	@property
	def stops(self): return list(self)
	@property
	def first_stop(self): return self[0]
	@property
	def last_stop(self): return self[-1]

	@property
	def cumulative_time(self): return self.cumulative_time_at(-1)
	@property
	def departure_node(self): return self.route[self.start].node
	@property
	def arrival_node(self): return self.route[self.end - 1].node

	def __len__(self): return self.end - self.start
	def __getitem__(self, n):
		stopidx = self._abs_index(n)
		stop = self.route[stopidx]
		return SliceStop(stopidx, stop, stop.node, self.cumulative_time_at(n))
	def __iter__(self): return (self[n] for n in range(len(self)))

	def __repr__(self):
		return '<RouteSlice {} [{}:{}] initial={}>'.format(
			self.route.id, self.start, self.end, self.initial_time )


@u.attr_struct(frozen=True)
class RouteLeg:
	'''Journey leg riding a route slice from boarding to alighting stop.
		"stops" with wall-clock times are only set for legs in assembled journeys.'''
	route = u.attr_init()
	stops = u.attr_init(tuple)

	kind = 'route'

	@property
	def cumulative_time(self): return self.route.cumulative_time
	@property
	def departure_node(self): return self.route.departure_node
	@property
	def arrival_node(self): return self.route.arrival_node

	@property
	def first_stop(self): return self.stops[0] if self.stops else None
	@property
	def intermediate_stops(self): return self.stops[1:-1]
	@property
	def last_stop(self): return self.stops[-1] if self.stops else None

@u.attr_struct(frozen=True)
class TransferLeg:
	'Journey leg over a transfer, aligned to direction of travel.'
	transfer = u.attr_init()

	kind = 'transfer'

	@property
	def cumulative_time(self): return self.transfer.cumulative_time
	@property
	def departure_node(self): return self.transfer.between
	@property
	def arrival_node(self): return self.transfer.and_

	@property
	def time(self): return self.transfer.time
	@property
	def formatted_time(self):
		'Transfer time in whole minutes, rounded up.'
		return math.ceil(self.transfer.time / 60)


# prev=None and leg=None for a seed label at the departure node
Label = namedtuple('Label', 'node prev leg cumulative_time')

class LabelRounds:
	'Per-round node labels, with at most one Label for each (round, node).'

	def __init__(self): self.set_idx = list()

	def add_round(self):
		self.set_idx.append(dict())
		return len(self.set_idx) - 1

	def get(self, k, node):
		if not 0 <= k < len(self.set_idx): return
		return self.set_idx[k].get(node)

	def set(self, k, label): self.set_idx[k][label.node] = label

	def time(self, k, node, default=u.inf):
		label = self.get(k, node)
		return default if label is None else label.cumulative_time

	def __getitem__(self, k): return self.set_idx[k]
	def __len__(self): return len(self.set_idx)
	def __iter__(self): return iter(self.set_idx)
