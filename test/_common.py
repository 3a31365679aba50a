import itertools as it, operator as op, functools as ft
from collections import ChainMap, OrderedDict
from collections.abc import Mapping
from pathlib import Path
import os, sys, types, datetime

import pytz
import yaml # PyYAML module is required for tests

path_project = Path(__file__).parent.parent
sys.path.insert(1, str(path_project))
import raptor_routing as rr

path_test = Path(__file__).parent
path_feed = path_test / 'feed'

verbose = os.environ.get('RR_DEBUG')
if verbose:
	rr.u.logging.basicConfig(
		format='%(asctime)s :: %(name)s %(levelname)s :: %(message)s',
		datefmt='%Y-%m-%d %H:%M:%S', level=rr.u.logging.DEBUG )

tz = pytz.timezone('Europe/Amsterdam')



class dmap(ChainMap):

	maps = None

	def __init__(self, *maps, **map0):
		maps = list((v if not isinstance( v,
			(types.GeneratorType, list, tuple) ) else OrderedDict(v)) for v in maps)
		if map0 or not maps: maps = [map0] + maps
		super(dmap, self).__init__(*maps)

	def __repr__(self):
		return '<{} {:x} {}>'.format(
			self.__class__.__name__, id(self), repr(self._asdict()) )

	def _asdict(self):
		items = dict()
		for k, v in self.items():
			if isinstance(v, self.__class__): v = v._asdict()
			items[k] = v
		return items

	def _set_attr(self, k, v):
		self.__dict__[k] = v

	def __iter__(self):
		key_set = dict.fromkeys(set().union(*self.maps), True)
		return filter(lambda k: key_set.pop(k, False), it.chain.from_iterable(self.maps))

	def __getitem__(self, k):
		k_maps = list()
		for m in self.maps:
			if k in m:
				if isinstance(m[k], Mapping): k_maps.append(m[k])
				elif not (m[k] is None and k_maps): return m[k]
		if not k_maps: raise KeyError(k)
		return self.__class__(*k_maps)

	def __getattr__(self, k):
		try: return self[k]
		except KeyError: raise AttributeError(k)

	def __setattr__(self, k, v):
		for m in map(op.attrgetter('__dict__'), [self] + self.__class__.mro()):
			if k in m:
				self._set_attr(k, v)
				break
		else: self[k] = v

	def __delitem__(self, k):
		for m in self.maps:
			if k in m: del m[k]


def load_test_data(path_dir, path_stem, name):
	'Load test data from specified YAML file and return as dmap object.'
	with (path_dir / '{}.test.{}.yaml'.format(path_stem, name)).open() as src:
		return dmap(rr.u.yaml_load(src))


def struct_from_val(val, cls, as_tuple=False):
	if isinstance(val, (tuple, list)): val = cls(*val)
	elif isinstance(val, (dmap, dict, OrderedDict)): val = cls(**val)
	else: raise ValueError(val)
	return val if not as_tuple else rr.u.attr.astuple(val)

@rr.u.attr_struct
class JourneyLeg: keys = 'kind src dst'

@rr.u.attr_struct
class TestGoal:
	src = rr.u.attr_init()
	dst = rr.u.attr_init()
	departure = rr.u.attr_init('2026-10-19 12:00')


def dt(value='2026-10-19 12:00'):
	'Localized datetime from "YYYY-MM-DD HH:MM" string.'
	return tz.localize(datetime.datetime.strptime(value, '%Y-%m-%d %H:%M'))

def feed_from_data(data):
	if isinstance(data, dmap): data = data._asdict()
	return rr.feed.parse_feed_data(data)

_sample_feed = None
def sample_feed():
	global _sample_feed
	if not _sample_feed: _sample_feed = rr.feed.parse_feed(path_feed)
	return _sample_feed

def sample_router(**conf):
	return rr.engine.RaptorEngine( sample_feed(),
		rr.engine.EngineConf(**conf), tz=tz, timer_func=rr.calc_timer )



class JourneyAssertions:

	def __init__(self, test_case, feed_graph):
		self.test_case, self.feed = test_case, feed_graph

	def journey_legs(self, journey):
		return list( JourneyLeg(leg.kind, leg.departure_node.id, leg.arrival_node.id)
			for leg in journey )

	def assert_journey_invariants(self, journey, node_src, node_dst):
		tc = self.test_case
		tc.assertTrue(journey.legs)
		tc.assertIs(journey.departure_node, node_src)
		tc.assertIs(journey.arrival_node, node_dst)
		tc.assertGreater(journey.arrival_time, journey.departure_time)
		tc.assertEqual(journey.duration, journey.legs[-1].cumulative_time)
		tc.assertEqual(journey.transfers, max(0, len(journey.route_legs) - 1))
		tc.assertGreaterEqual(journey.transfers, 0)
		for leg_a, leg_b in zip(journey.legs, journey.legs[1:]):
			tc.assertIs(leg_a.arrival_node, leg_b.departure_node)
			tc.assertLessEqual(leg_a.cumulative_time, leg_b.cumulative_time)
		for leg in journey.route_legs:
			tc.assertGreater(len(leg.stops), 1)
			tc.assertTrue(leg.first_stop.halts and leg.last_stop.halts)
			for stop in leg.stops:
				tc.assertEqual(stop.time, rr.u.dt_add(journey.departure_time, stop.cumulative_time))

	def assert_journey_results(self, test, journeys, verbose=verbose):
		'Assert that journeys described by test-data (from YAML) match JourneyList, in order.'
		tc = self.test_case
		if verbose:
			print('\n' + ' -'*5, 'Journeys found:')
			journeys.pretty_print()
		jn_tests = test.journeys or list()
		tc.assertEqual(len(journeys), len(jn_tests), journeys)
		durations = list(map(op.attrgetter('duration'), journeys))
		tc.assertEqual(durations, sorted(durations))
		for journey, jn_test in zip(journeys, jn_tests):
			legs = list(struct_from_val(leg, JourneyLeg) for leg in jn_test['legs'])
			tc.assertEqual(self.journey_legs(journey), legs, journey)
			tc.assertEqual(journey.duration, rr.u.dts_parse(jn_test['duration']), journey)
			if 'transfers' in jn_test: tc.assertEqual(journey.transfers, jn_test['transfers'], journey)
