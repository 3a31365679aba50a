import itertools as it, operator as op, functools as ft
from collections import OrderedDict, deque
import datetime

import attr, pytz

from . import utils as u, types as t


# Added to boarding time for every route boarded after the first one
min_transfer_time = 60

# Runaway guard for feeds with cycles, EngineConf.max_rounds is clamped to this
max_rounds_limit = 100


@u.attr_struct(vals_to_attrs=True)
class EngineConf:
	max_rounds = 10 # upper bound on route boardings per journey


def timer(self_or_func, func=None, *args, **kws):
	'Calculation call wrapper for timer/progress logging.'
	if not func: return lambda s,*a,**k: s.timer_wrapper(self_or_func, s, *a, **k)
	return self_or_func.timer_wrapper(func, *args, **kws)


class EngineError(Exception): pass

class RaptorEngine:

	feed = None

	def __init__(self, feed, conf=None, tz=None, timer_func=None):
		'''Creates RAPTOR Routing Engine over a read-only Feed graph.
			tz (pytz zone or its name) is used for default "now" departure time.'''
		self.conf, self.log = conf or EngineConf(), u.get_logger('rr.engine')
		self.timer_wrapper = timer_func if timer_func else lambda f,*a,**k: f(*a,**k)
		self.feed = feed
		self.tz = pytz.timezone(tz) if isinstance(tz, str) else (tz or pytz.utc)

		max_rounds = self.conf.max_rounds
		if not isinstance(max_rounds, int) or max_rounds < 0:
			raise EngineError('Invalid max_rounds value: {!r}'.format(max_rounds))
		if max_rounds > max_rounds_limit:
			self.log.warning( 'Clamping max_rounds'
				' value ({}) to hard limit: {}', max_rounds, max_rounds_limit )
			max_rounds = max_rounds_limit
		self.max_rounds = max_rounds


	def accumulate_routes(self, marked):
		'''Return {route: stopidx} with the earliest boardable
			stop at any of the marked nodes, for every route serving them.'''
		queue = OrderedDict()
		for node in marked:
			for stopidx, route in self.feed.routes_with_stop_at(node, exclude_non_halts=True):
				if stopidx == len(route) - 1: continue # can't ride anywhere from the final stop
				if stopidx < queue.get(route, len(route)): queue[route] = stopidx
		return queue

	@timer
	def scan(self, node_src):
		'''Round-based RAPTOR scan from node_src.
			Returns LabelRounds, where round k has best labels
				for nodes reachable with at most k route boardings.'''
		labels, best = t.base.LabelRounds(), dict()

		# Round 0 - seed label and walking from node_src
		# Walking-only labels are kept out of best-times,
		#  so that ridden alternatives to same nodes are still considered.
		labels.add_round()
		labels.set(0, t.base.Label(node_src, None, None, 0))
		best[node_src], marked = 0, [node_src]
		for transfer in self.feed.transfers_with_node(node_src):
			node = transfer.opposite_node(node_src)
			if node == node_src: continue
			transfer = transfer.align_to_node(node_src).with_initial_time(0)
			if transfer.cumulative_time >= labels.time(0, node): continue
			labels.set(0, t.base.Label(node, node_src, t.base.TransferLeg(transfer), transfer.cumulative_time))
			if node not in marked: marked.append(node)

		while marked:
			if len(labels) > self.max_rounds:
				self.log.info( 'Round limit ({}) reached with'
					' {:,} marked node(s), truncating scan', self.max_rounds, len(marked) )
				break
			k = labels.add_round()
			penalty = min_transfer_time if k > 1 else 0

			queue, marked = self.accumulate_routes(marked), list()

			for route, stopidx in queue.items():
				node_board = route[stopidx].node
				rs = route.slice().slice_from(stopidx)
				rs = rs.with_initial_time(labels.time(k-1, node_board) + penalty)
				n = 1
				while n < len(rs):
					ss = rs[n]
					if not ss.stop.halts:
						n += 1
						continue
					if ss.cumulative_time < best.get(ss.node, u.inf):
						best[ss.node] = ss.cumulative_time
						labels.set(k, t.base.Label( ss.node, rs.departure_node,
							t.base.RouteLeg(rs.slice_to(n)), ss.cumulative_time ))
						if ss.node not in marked: marked.append(ss.node)
					# Catch up - re-board here if that stop was reached earlier in previous round
					dts_prev = labels.time(k-1, ss.node) + penalty
					if dts_prev < ss.cumulative_time:
						rs, n = rs.slice_from(n).with_initial_time(dts_prev), 0
					n += 1

			# Nodes are queued again if their label improves after they were relaxed
			routes_marked, relax = len(marked), deque(marked)
			while relax:
				node = relax.popleft()
				label, trace_nodes = labels.get(k, node), None
				for transfer in self.feed.transfers_with_node(node):
					node_to = transfer.opposite_node(node)
					if node_to == node: continue
					transfer = transfer.align_to_node(node).with_initial_time(label.cumulative_time)
					if transfer.cumulative_time >= best.get(node_to, u.inf): continue
					if trace_nodes is None: trace_nodes = self.trace_transfer_nodes(labels, node, k)
					if node_to in trace_nodes:
						self.log.debug('Skipping transfer back to node in the same trace: {}', transfer)
						continue
					best[node_to] = transfer.cumulative_time
					labels.set(k, t.base.Label(node_to, node, t.base.TransferLeg(transfer), transfer.cumulative_time))
					if node_to not in marked: marked.append(node_to)
					if node_to not in relax: relax.append(node_to)

			self.log.debug(
				'Round {}: routes={:,}, labels={:,}, marked={:,} (via transfers={:,})',
				k, len(queue), len(labels[k]), len(marked), len(marked) - routes_marked )

		return labels


	def trace_labels(self, labels, node, k):
		'''Return list of labels (without seed label) that lead from departure node
				to specified node at round k, or None if labels do not form a complete trace.
			Transfer legs do not use up a round, route legs do.'''
		trace, seen = list(), set()
		while True:
			if (k, node) in seen: return # can only be a broken label chain
			seen.add((k, node))
			label = labels.get(k, node)
			if label is None: return
			if label.prev is None: break
			trace.append(label)
			if label.leg.kind == 'route': k -= 1
			node = label.prev
		trace.reverse()
		return trace

	def trace_transfer_nodes(self, labels, node, k):
		'Set of nodes at either end of transfer legs on the trace to node at round k.'
		nodes = set()
		for label in self.trace_labels(labels, node, k) or list():
			if label.leg.kind == 'transfer':
				nodes.update([label.leg.departure_node, label.leg.arrival_node])
		return nodes


	def build_journey(self, index, legs, departure_time):
		'''Build Journey from legs, with all route-leg
			stops anchored to absolute departure_time.'''
		if not legs: raise EngineError('Journey must have at least one leg')
		journey_legs = list()
		for leg in legs:
			if leg.kind == 'route':
				leg = attr.evolve(leg, stops=tuple(
					t.public.JourneyStop( ss.stopidx, ss.node, ss.cumulative_time,
						u.dt_add(departure_time, ss.cumulative_time),
						halts=ss.stop.halts, cancelled=ss.stop.cancelled, platform=ss.stop.platform )
					for ss in leg.route ))
			journey_legs.append(leg)
		return t.public.Journey(index, tuple(journey_legs), departure_time)

	@timer
	def calculate(self, node_src, node_dst, departure_time=None):
		'''Return JourneyList of possible journeys from node_src to node_dst,
				at most one for each number of route boardings, ordered by duration.
			departure_time defaults to "now" in engine timezone,
				naive datetimes are interpreted in that timezone too.'''
		for node in node_src, node_dst:
			if not self.feed.has_node(node):
				raise EngineError('Node is not part of the feed: {!r}'.format(node))
		if departure_time is None: departure_time = datetime.datetime.now(self.tz)
		elif not departure_time.tzinfo: departure_time = self.tz.localize(departure_time)
		if node_src == node_dst:
			self.log.debug('Same departure and arrival node, no journeys: {!r}', node_src)
			return t.public.JourneyList()

		labels = self.scan(node_src)

		traces, trace_keys = list(), set()
		for k in range(len(labels)):
			trace = self.trace_labels(labels, node_dst, k)
			if not trace: continue
			trace_key = tuple(
				(label.leg.kind, label.prev.id, label.node.id, label.cumulative_time)
				for label in trace )
			if trace_key in trace_keys: continue
			trace_keys.add(trace_key)
			traces.append(trace)
		traces.sort(key=lambda trace: trace[-1].cumulative_time)

		journeys = t.public.JourneyList(
			self.build_journey(n, list(map(op.attrgetter('leg'), trace)), departure_time)
			for n, trace in enumerate(traces) )
		if not journeys:
			self.log.info('Could not find any journeys between {!r} and {!r}', node_src, node_dst)
		return journeys
