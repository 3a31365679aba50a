import itertools as it, operator as op, functools as ft
from collections import UserList
import datetime

from .. import utils as u


### RaptorEngine query result

@u.attr_struct(frozen=True)
class JourneyStop:
	'Stop of a journey route-leg with its absolute (wall-clock) arrival time.'
	stopidx = u.attr_init()
	node = u.attr_init()
	cumulative_time = u.attr_init()
	time = u.attr_init()
	halts = u.attr_init(True)
	cancelled = u.attr_init(False)
	platform = u.attr_init(None)

	@property
	def formatted_time(self): return u.clock_format(self.time)


@u.attr_struct(repr=False, cmp=False)
class Journey:
	'''Ordered legs from departure to arrival node, anchored at absolute departure_time.
		Leg cumulative times are relative to departure_time, so last one sets arrival.'''
	index = u.attr_init()
	legs = u.attr_init(tuple)
	departure_time = u.attr_init(None)

	@property
	def departure_node(self): return self.legs[0].departure_node
	@property
	def arrival_node(self): return self.legs[-1].arrival_node

	@property
	def arrival_time(self): return u.dt_add(self.departure_time, self.legs[-1].cumulative_time)
	@property
	def duration(self): return int((self.arrival_time - self.departure_time).total_seconds())

	@property
	def route_legs(self): return list(leg for leg in self.legs if leg.kind == 'route')
	@property
	def transfers(self):
		'Number of changes between boarded routes, zero for walk-only journeys too.'
		return max(0, len(self.route_legs) - 1)

	@property
	def formatted_departure_time(self): return u.clock_format(self.departure_time)
	@property
	def formatted_arrival_time(self): return u.clock_format(self.arrival_time)
	@property
	def formatted_duration(self): return u.duration_format(self.duration)

	@property
	def first_leg_is_transfer(self): return self.legs[0].kind == 'transfer'
	@property
	def last_leg_is_transfer(self): return self.legs[-1].kind == 'transfer'

	def __len__(self): return len(self.legs)
	def __iter__(self): return iter(self.legs)

	def __repr__(self):
		points = list()
		for leg in self.legs:
			if leg.kind == 'route':
				if not points: points.append('{} [{}]'.format(
					leg.departure_node.id, u.dts_format(leg.route.first_stop.cumulative_time) ))
				points.append('{}:{} [{}]'.format(
					leg.route.id, leg.arrival_node.id, u.dts_format(leg.cumulative_time) ))
			else:
				points.append('(transfer-to={} dt={})'.format(
					leg.arrival_node.id, datetime.timedelta(seconds=int(leg.transfer.time)) ))
		return '<Journey[ {} ]>'.format(' - '.join(points))

	def pretty_print(self, indent=0, **print_kws):
		p = lambda tpl,*a,**k: print(' '*indent + tpl.format(*a,**k), **print_kws)
		node_id_ext = lambda node: ' [{}]'.format(node.id) if node.id != node.name else ''

		p( 'Journey {} (departure: {}, arrival: {}, duration: {}, transfers: {}):',
			self.index, self.formatted_departure_time, self.formatted_arrival_time,
			self.formatted_duration, self.transfers )
		for leg in self.legs:
			if leg.kind == 'route':
				route = leg.route.route
				p( '  route [{}]{}:', route.display_name,
					' -> {}'.format(route.headsign) if route.headsign else '' )
				for stop in leg.stops:
					p( '    {:>5} {}{}{}{}', stop.formatted_time, stop.node.name, node_id_ext(stop.node),
						' (platform {})'.format(stop.platform) if stop.platform else '',
						' (cancelled)' if stop.cancelled else '' )
			else:
				p('  transfer ({} min):', leg.formatted_time)
				p('    from: {}{}', leg.departure_node.name, node_id_ext(leg.departure_node))
				p('    to: {}{}', leg.arrival_node.name, node_id_ext(leg.arrival_node))


class JourneyList(UserList):
	'Journeys for a single query, ordered by duration.'

	def pretty_print(self, indent=0, **print_kws):
		if not self.data:
			print(' '*indent + 'No journeys found.', **print_kws)
			return
		print(' '*indent + 'Journeys ({}):'.format(len(self.data)), **print_kws)
		for journey in self.data:
			print(**print_kws)
			journey.pretty_print(indent=indent+2, **print_kws)
