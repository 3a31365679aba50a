### Feed graph input data

# Feed is a small static network: agencies, modalities, nodes,
#  routes (ordered stops with relative times), symmetric transfers and notifications.

import itertools as it, operator as op, functools as ft
import re

import attr

from .. import utils as u
from . import base


log = u.get_logger('rr.feed')


class FeedEntity:
	'Mixin for feed definitions that hash and compare by type and id.'
	__slots__ = ()
	def __hash__(self): return hash((type(self).__name__, self.id))
	def __eq__(self, v): return u.same_type_and_id(self, v)


@u.attr_struct(cmp=False)
class Agency(FeedEntity):
	id = u.attr_init()
	name = u.attr_init()
	abbr = u.attr_init(None)
	url = u.attr_init(None)
	description = u.attr_init(None)

@u.attr_struct(cmp=False)
class Modality(FeedEntity):
	id = u.attr_init()
	name = u.attr_init(None)
	node_name = u.attr_init(None)
	abbr = u.attr_init(None)
	icon = u.attr_init(None)
	url = u.attr_init(None)
	description = u.attr_init(None)


@u.attr_struct(repr=False, cmp=False)
class Node(FeedEntity):
	id = u.attr_init()
	name = u.attr_init()
	code = u.attr_init(None)
	url = u.attr_init(None)
	modality = u.attr_init(None)
	location = u.attr_init(None)
	icon = u.attr_init(None)

	def __attrs_post_init__(self):
		if not self.icon:
			self.icon = (self.modality and self.modality.icon) or 'location-dot'

	@property
	def description(self):
		parts = list()
		if self.modality and self.modality.node_name: parts.append(self.modality.node_name)
		if self.location: parts.append(self.location)
		parts.append(self.id)
		return ' · '.join(parts)

	def __repr__(self):
		if self.id == self.name: return '<Node {}>'.format(self.id)
		return '<Node {} [{}]>'.format(self.name, self.id)


@u.attr_struct(repr=False)
class RouteStop:
	sequence = u.attr_init()
	node = u.attr_init()
	time = u.attr_init(0) # seconds from the previous stop
	halts = u.attr_init(True)
	cancelled = u.attr_init(False)
	platform = u.attr_init(None)

	def __repr__(self):
		return 'RouteStop(seq={0.sequence}, node={0.node.id}, time={0.time}{1})'.format(
			self, '' if self.halts else ', non-halting' )

@u.attr_struct
class RouteColor:
	background = u.attr_init('#ffffff')
	text = u.attr_init('#000000')

@u.attr_struct(repr=False, cmp=False)
class Route(FeedEntity):
	'''Ordered, directed sequence of stops for a single trip pattern.
		Offsets are prefix sums of stop times from the first stop,
			which always contributes zero, as it is the boarding point.'''
	id = u.attr_init()
	name = u.attr_init()
	stops = u.attr_init(tuple)
	abbr = u.attr_init(None)
	url = u.attr_init(None)
	agency = u.attr_init(None)
	modality = u.attr_init(None)
	headsign = u.attr_init(None)
	color = u.attr_init(RouteColor)
	icon = u.attr_init(None)
	offsets = u.attr_init(attr.Factory(
		lambda self: tuple(it.accumulate(
			(stop.time if n else 0) for n, stop in enumerate(self.stops) )),
		takes_self=True ))

	def __attrs_post_init__(self):
		if not self.icon: self.icon = (self.modality and self.modality.icon) or 'train'

	@property
	def display_name(self): return self.abbr or self.name

	def stop_index(self, node, exclude_non_halts=False, start=0, end=None):
		'Return index of the first stop at node within [start, end), or None.'
		for n in range(start, len(self.stops) if end is None else end):
			stop = self.stops[n]
			if stop.node == node and (not exclude_non_halts or stop.halts): return n

	def slice(self, initial_time=0):
		'Return RouteSlice covering all stops of this route.'
		return base.RouteSlice(self, 0, len(self.stops), initial_time)

	def __len__(self): return len(self.stops)
	def __iter__(self): return iter(self.stops)
	def __getitem__(self, n): return self.stops[n]
	def __repr__(self):
		return '<Route {} ({}, stops={})>'.format(
			self.id, self.headsign or self.display_name, len(self.stops) )


@u.attr_struct(repr=False, cmp=False, frozen=True)
class Transfer(FeedEntity):
	'''Symmetric connection between two nodes, stored once per pair.
		Transformations (re-timing, re-aligning) return new instances.'''
	id = u.attr_init()
	between = u.attr_init()
	and_ = u.attr_init()
	time = u.attr_init(0)
	separate = u.attr_init(False)
	initial_time = u.attr_init(0)

	@property
	def cumulative_time(self): return self.initial_time + self.time

	def includes(self, node): return node == self.between or node == self.and_

	def opposite_node(self, node):
		if node == self.between: return self.and_
		if node == self.and_: return self.between
		raise ValueError('Node {!r} is not part of transfer {!r}'.format(node, self))

	def align_to_node(self, node):
		'Return transfer with "between" set to specified node.'
		if node == self.between: return self
		return attr.evolve(self, between=node, and_=self.opposite_node(node))

	def with_initial_time(self, initial_time):
		return attr.evolve(self, initial_time=initial_time)

	def __repr__(self):
		return '<Transfer {} [{} - {}] time={}{}>'.format(
			self.id, self.between.id, self.and_.id, self.time,
			'' if not self.initial_time else ' initial={}'.format(self.initial_time) )


@u.attr_struct(repr=False, cmp=False)
class Notification(FeedEntity):
	id = u.attr_init()
	type = u.attr_init('disruption')
	name = u.attr_init(None)
	description = u.attr_init(None)
	period = u.attr_init(None)
	affected_nodes = u.attr_init(tuple)
	affected_routes = u.attr_init(tuple)
	icon = u.attr_init(None)
	color = u.attr_init(None)

	@property
	def has_affected_nodes(self): return bool(self.affected_nodes)
	@property
	def has_affected_routes(self): return bool(self.affected_routes)

	def affects_node(self, node): return node in self.affected_nodes
	def affects_route(self, route): return route in self.affected_routes

	def __repr__(self): return '<Notification {} [{}] {}>'.format(self.id, self.type, self.name)



class Feed:
	'''Read-only feed graph with id lookups and node-centric indexes.
		Built once by the loader and passed explicitly to anything querying it.'''

	def __init__( self, agencies=None, modalities=None,
			nodes=None, transfers=None, routes=None, notifications=None ):
		self.set_idx = dict()
		for k, items in [ ('agency', agencies), ('modality', modalities),
				('node', nodes), ('transfer', transfers),
				('route', routes), ('notification', notifications) ]:
			self.set_idx[k] = dict((item.id, item) for item in (items or list()))

		self.idx_transfers, self.idx_routes = dict(), dict()
		for transfer in self.transfers:
			for node in transfer.between, transfer.and_:
				node_transfers = self.idx_transfers.setdefault(node, list())
				if transfer not in node_transfers: node_transfers.append(transfer)
		for route in self.routes:
			for stopidx, stop in enumerate(route):
				self.idx_routes.setdefault(stop.node, list()).append((stopidx, route))

	def _get(self, k, item_id):
		if item_id is None: return
		try: return self.set_idx[k][item_id]
		except KeyError: log.warning('Could not find {} with id {!r}', k, item_id)

	def get_agency(self, agency_id): return self._get('agency', agency_id)
	def get_modality(self, modality_id): return self._get('modality', modality_id)
	def get_node(self, node_id): return self._get('node', node_id)
	def get_transfer(self, transfer_id): return self._get('transfer', transfer_id)
	def get_route(self, route_id): return self._get('route', route_id)
	def get_notification(self, notification_id): return self._get('notification', notification_id)

	@property
	def agencies(self): return list(self.set_idx['agency'].values())
	@property
	def modalities(self): return list(self.set_idx['modality'].values())
	@property
	def nodes(self): return list(self.set_idx['node'].values())
	@property
	def transfers(self): return list(self.set_idx['transfer'].values())
	@property
	def routes(self): return list(self.set_idx['route'].values())
	@property
	def notifications(self): return list(self.set_idx['notification'].values())

	def has_node(self, node):
		return node is not None and self.set_idx['node'].get(node.id) == node


	def transfers_with_node(self, node, exclude_separate=False):
		'All transfers that include node, in either orientation.'
		return list( transfer for transfer in self.idx_transfers.get(node, list())
			if not (exclude_separate and transfer.separate) )

	def transfer_between(self, node_a, node_b, exclude_separate=False):
		for transfer in self.transfers_with_node(node_a, exclude_separate):
			if transfer.includes(node_b): return transfer

	def routes_with_stop_at(self, node, exclude_non_halts=False):
		'''All routes going through node as (stopidx, route) tuples,
			one for each time route passes through that node.'''
		return list( (stopidx, route) for stopidx, route in self.idx_routes.get(node, list())
			if not exclude_non_halts or route[stopidx].halts )

	def notifications_for_node(self, node):
		return list(filter(op.methodcaller('affects_node', node), self.notifications))

	def notifications_for_route(self, route):
		return list(filter(op.methodcaller('affects_route', route), self.notifications))


	_search_split = re.compile(r'[\s\-/,.()]+')

	def _search_words(self, value):
		if not value: return list()
		return list(filter(None, self._search_split.split(str(value).lower())))

	def search_nodes(self, query, limit=None):
		'''Return nodes where all query words are prefixes of words
				in node name, code or location, with name matches ranked first.
			Ties are kept in feed order.'''
		query_words = self._search_words(query)
		if not query_words: return list()
		results = list()
		for n, node in enumerate(self.nodes):
			words_name = self._search_words(node.name)
			words_other = self._search_words(node.code) + self._search_words(node.location)
			score = 0
			for qw in query_words:
				if any(w.startswith(qw) for w in words_name): score += 2
				elif any(w.startswith(qw) for w in words_other): score += 1
				else: break
			else: results.append((-score, n, node))
		results.sort(key=op.itemgetter(0, 1))
		return list(map(op.itemgetter(2), results[:limit]))

	def resolve_node(self, ref):
		'Find node by exact id, exact code (case-insensitive) or best search match.'
		node = self.set_idx['node'].get(ref)
		if node: return node
		for node in self.nodes:
			if node.code and str(node.code).lower() == str(ref).lower(): return node
		nodes = self.search_nodes(ref, limit=1)
		return nodes[0] if nodes else None

	def __repr__(self):
		return '<Feed nodes={} routes={} transfers={}>'.format(
			*(len(self.set_idx[k]) for k in ['node', 'route', 'transfer']) )
