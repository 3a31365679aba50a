import itertools as it, operator as op, functools as ft
import unittest, datetime, io

from . import _common as c

rr = c.rr


class SampleFeedJourneyTests(unittest.TestCase):

	@classmethod
	def setUpClass(cls):
		cls.feed = c.sample_feed()
		cls.router = c.sample_router()

	def setUp(self): self.checks = c.JourneyAssertions(self, self.feed)

	def query(self, src, dst, departure='2026-10-19 12:00'):
		node_src, node_dst = map(self.feed.get_node, [src, dst])
		journeys = self.router.calculate(node_src, node_dst, c.dt(departure))
		for journey in journeys: self.checks.assert_journey_invariants(journey, node_src, node_dst)
		return journeys

	def legs(self, journey):
		return list(
			(leg.kind, leg.route.id if leg.kind == 'route' else leg.transfer.id)
			for leg in journey )

	def test_direct_and_changing_alternatives(self):
		journeys = self.query('ams', 'amf')
		self.assertEqual(len(journeys), 2)
		fast, direct = journeys
		self.assertEqual(self.legs(fast), [('route', 'ic-3500'), ('route', 'ic-amf')])
		self.assertEqual((fast.duration, fast.transfers), (2580, 1))
		self.assertEqual(
			(fast.formatted_departure_time, fast.formatted_arrival_time, fast.formatted_duration),
			('12:00', '12:43', '0:43') )
		self.assertEqual(self.legs(direct), [('route', 'ic-3100')])
		self.assertEqual((direct.duration, direct.transfers), (3000, 0))
		self.assertEqual(direct.formatted_arrival_time, '12:50')

	def test_route_leg_stops(self):
		fast, direct = self.query('ams', 'amf')
		leg1, leg2 = fast.legs
		self.assertEqual(
			list((stop.node.id, stop.formatted_time) for stop in leg1.stops),
			[('ams', '12:00'), ('ut', '12:27')] )
		self.assertEqual(leg1.first_stop.platform, 5)
		self.assertEqual(leg1.intermediate_stops, ())
		self.assertEqual(
			list((stop.node.id, stop.formatted_time) for stop in leg2.stops),
			[('ut', '12:28'), ('amf', '12:43')] )
		# Passing stops are listed, but never boarded or alighted at
		leg, = direct.legs
		self.assertEqual(list(map(op.attrgetter('halts'), leg.stops)), [True, False, True])
		self.assertIs(leg.intermediate_stops[0].node, self.feed.get_node('ut'))
		# Canonical feed routes are not changed by building journeys
		self.assertEqual(self.feed.get_route('ic-3500').offsets, (0, 1620, 3300, 4500))
		self.assertEqual(leg1.route.route.stops, self.feed.get_route('ic-3500').stops)

	def test_walk_to_first_route(self):
		journeys = self.query('ams-metro', 'ut')
		self.assertEqual(list(map(self.legs, journeys)), [
			[('route', 'metro-52'), ('route', 'ic-zuid')],
			[('transfer', 'ams-metro'), ('route', 'ic-3500')] ])
		self.assertEqual(list(map(op.attrgetter('duration'), journeys)), [1740, 1800])
		self.assertEqual(list(map(op.attrgetter('transfers'), journeys)), [1, 0])
		walk = journeys[1]
		self.assertTrue(walk.first_leg_is_transfer)
		self.assertFalse(walk.last_leg_is_transfer)
		self.assertIs(walk.legs[0].departure_node, self.feed.get_node('ams-metro'))
		self.assertEqual(walk.legs[0].formatted_time, 3)
		self.assertEqual(walk.legs[1].first_stop.formatted_time, '12:03')

	def test_alternative_per_round(self):
		journeys = self.query('ams-metro', 'amf')
		self.assertEqual(list(map(op.attrgetter('duration'), journeys)), [2700, 2760, 3180])
		self.assertEqual(list(map(op.attrgetter('transfers'), journeys)), [2, 1, 0])
		self.assertEqual(list(map(op.attrgetter('index'), journeys)), [0, 1, 2])
		self.assertEqual(self.legs(journeys[0]), [
			('route', 'metro-52'), ('route', 'ic-zuid'), ('route', 'ic-amf') ])

	def test_transfer_at_arrival(self):
		journey, = self.query('ams', 'ehv-bus')
		self.assertEqual(self.legs(journey), [('route', 'ic-3500'), ('transfer', 'ehv-bus')])
		self.assertTrue(journey.last_leg_is_transfer)
		self.assertEqual(journey.duration, 4500 + 240)
		leg = journey.legs[-1]
		self.assertIs(leg.departure_node, self.feed.get_node('ehv'))
		self.assertIs(leg.arrival_node, self.feed.get_node('ehv-bus'))
		self.assertEqual(leg.transfer.initial_time, 4500)

	def test_dst_change(self):
		journeys = self.query('ams', 'amf', '2026-03-29 01:30')
		self.assertEqual(journeys[1].duration, 3000)
		self.assertEqual(journeys[1].formatted_arrival_time, '3:20')

	def test_same_and_unreachable_nodes(self):
		self.assertEqual(len(self.query('ams', 'ams')), 0)
		self.assertEqual(len(self.query('amf', 'ams')), 0)

	def test_idempotence(self):
		journeys1, journeys2 = (self.query('ams-metro', 'amf') for n in range(2))
		self.assertEqual(list(map(repr, journeys1)), list(map(repr, journeys2)))
		self.assertEqual(
			list(map(op.attrgetter('arrival_time'), journeys1)),
			list(map(op.attrgetter('arrival_time'), journeys2)) )

	def test_invalid_nodes(self):
		ams = self.feed.get_node('ams')
		with self.assertRaises(rr.engine.EngineError):
			self.router.calculate(ams, rr.t.feed.Node('nowhere', 'Nowhere'))
		with self.assertRaises(rr.engine.EngineError): self.router.calculate(None, ams)

	def test_default_departure_time(self):
		journeys = self.router.calculate(*map(self.feed.get_node, ['ams', 'amf']))
		self.assertEqual(len(journeys), 2)
		self.assertEqual(journeys[0].departure_time.tzinfo.zone, 'Europe/Amsterdam')
		naive = datetime.datetime(2026, 10, 19, 12, 0)
		journeys = self.router.calculate(*map(self.feed.get_node, ['ams', 'amf']), naive)
		self.assertEqual(journeys[0].departure_time, c.dt('2026-10-19 12:00'))

	def test_pretty_print(self):
		out = io.StringIO()
		self.query('ams-metro', 'ut').pretty_print(file=out)
		out = out.getvalue()
		self.assertIn('Journeys (2):', out)
		self.assertIn('route [M52] -> Amsterdam Zuid:', out)
		self.assertIn('transfer (3 min):', out)
		self.assertIn('12:30 Utrecht Centraal [ut] (platform 18)', out)
		out = io.StringIO()
		self.query('amf', 'ams').pretty_print(file=out)
		self.assertEqual(out.getvalue().strip(), 'No journeys found.')


class ScanTests(unittest.TestCase):

	@classmethod
	def setUpClass(cls): cls.feed = c.sample_feed()

	def test_rounds_and_trace(self):
		router = c.sample_router()
		ams, ut, amf = map(self.feed.get_node, ['ams', 'ut', 'amf'])
		labels = router.scan(ams)
		self.assertEqual(len(labels), 4) # rounds 0-2, and empty last round
		self.assertEqual(labels.time(0, ams), 0)
		self.assertEqual(labels.time(1, ut), 1620)
		self.assertEqual(labels.time(1, amf), 3000)
		self.assertEqual(labels.time(2, amf), 2580)
		self.assertEqual(labels[3], dict())
		trace = router.trace_labels(labels, amf, 2)
		self.assertEqual(list(label.node.id for label in trace), ['ut', 'amf'])
		self.assertEqual(list(label.leg.kind for label in trace), ['route', 'route'])
		self.assertIsNone(router.trace_labels(labels, amf, 3))
		self.assertEqual(router.trace_labels(labels, ams, 0), list())

	def test_round_limit(self):
		router = c.sample_router(max_rounds=1)
		ams_metro, amf = map(self.feed.get_node, ['ams-metro', 'amf'])
		with self.assertLogs('rr.engine', 'INFO') as logs:
			journeys = router.calculate(ams_metro, amf, c.dt())
		self.assertIn('Round limit (1) reached', '\n'.join(logs.output))
		self.assertEqual(list(map(op.attrgetter('duration'), journeys)), [3180])
		for journey in journeys: self.assertLessEqual(len(journey.route_legs), 1)

	def test_round_limit_clamped(self):
		with self.assertLogs('rr.engine', 'WARNING'):
			router = c.sample_router(max_rounds=1000)
		self.assertEqual(router.max_rounds, rr.engine.max_rounds_limit)
		with self.assertRaises(rr.engine.EngineError): c.sample_router(max_rounds=-1)

	def test_build_journey(self):
		router = c.sample_router()
		route = self.feed.get_route('ic-3500')
		rs = route.slice().slice_beginning_at(self.feed.get_node('ut')).with_initial_time(600)
		leg = rr.t.base.RouteLeg(rs.slice_ending_at(self.feed.get_node('ht')))
		journey = router.build_journey(7, [leg], c.dt('2026-10-19 23:30'))
		self.assertEqual(journey.index, 7)
		self.assertEqual(leg.stops, ())
		self.assertEqual(list(stop.formatted_time for stop in journey.legs[0].stops), ['23:40', '0:08'])
		self.assertEqual(journey.duration, 2280)
		self.assertEqual(journey.arrival_time.day, 20)
		with self.assertRaises(rr.engine.EngineError): router.build_journey(0, [], c.dt())
