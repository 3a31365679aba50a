import itertools as it, operator as op, functools as ft
import sys, re, math, datetime

import pytz, yaml

import raptor_routing as rr


log = rr.u.get_logger('rr.cli')


def parse_departure_time(value, tz, now=None):
	'''Parse "[YYYY-MM-DD ]HH:MM[:SS]" or seconds-since-midnight
			value into tz-aware datetime, with today's date (in tz) by default.
		Returns current time for empty value.'''
	if now is None: now = datetime.datetime.now(tz)
	if not value: return now
	m = re.search(r'^\s*(\d{4})-(\d{2})-(\d{2})(?:[\sT]+(.*))?$', value)
	if m: day, value = datetime.date(*map(int, m.groups()[:3])), m.group(4) or '0'
	else: day = now.date()
	dts = rr.u.dts_parse(value)
	return rr.u.dt_add(tz.localize(datetime.datetime.combine(day, datetime.time())), dts)


def print_nodes(nodes):
	if not nodes: return print('No nodes found.')
	for node in nodes: print('{}  {}  ({})'.format(node.id, node.name, node.description))

def print_station(feed_graph, node):
	print('{} [{}]'.format(node.name, node.id))
	print('  {}'.format(node.description))
	if node.url: print('  {}'.format(node.url))

	print('Routes:')
	for stopidx, route in feed_graph.routes_with_stop_at(node):
		stop = route[stopidx]
		print('  [{}] -> {}{}{}{}'.format(
			route.display_name, route.headsign,
			' (platform {})'.format(stop.platform) if stop.platform else '',
			' (passing)' if not stop.halts else '',
			' (cancelled)' if stop.cancelled else '' ))

	print('Transfers:')
	for transfer in feed_graph.transfers_with_node(node):
		print('  {} ({} min){}'.format(
			transfer.opposite_node(node).name, math.ceil(transfer.time / 60),
			' (separate)' if transfer.separate else '' ))

	for notification in feed_graph.notifications_for_node(node):
		print('Notice: [{}] {}'.format(notification.type, notification.name))

def print_schedule(feed_graph, route, departure_time):
	print('[{}] {} -> {}{}'.format(
		route.display_name, route.name, route.headsign,
		' ({})'.format(route.agency.name) if route.agency else '' ))
	for ss in route.slice():
		print('  {:>5} {}{}{}{}'.format(
			rr.u.clock_format(rr.u.dt_add(departure_time, ss.cumulative_time)), ss.node.name,
			' (platform {})'.format(ss.stop.platform) if ss.stop.platform else '',
			' (passing)' if not ss.stop.halts else '',
			' (cancelled)' if ss.stop.cancelled else '' ))
	for notification in feed_graph.notifications_for_route(route):
		print('Notice: [{}] {}'.format(notification.type, notification.name))

def print_notifications(notifications):
	if not notifications: return print('No notifications.')
	for notification in notifications:
		print('[{}] {}{}'.format( notification.type, notification.name,
			' ({})'.format(notification.period) if notification.period else '' ))
		if notification.description: print('  {}'.format(notification.description.strip()))
		for k in 'nodes', 'routes':
			affected = getattr(notification, 'affected_{}'.format(k))
			if not affected: continue
			print('  affected {}: {}'.format(k, ', '.join(
				getattr(v, 'display_name', v.name) for v in affected )))


def main(args=None):
	conf = rr.feed.FeedConf()
	conf_engine = rr.engine.EngineConf()

	import argparse
	parser = argparse.ArgumentParser(
		description='Journey planner for small static transit feeds, using RAPTOR algorithm.')
	parser.add_argument('feed_path',
		help='Path to YAML feed directory (with nodes.yaml,'
			' routes.yaml, transfers.yaml, etc) or a single YAML file with all sections.')

	group = parser.add_argument_group('Feed options')
	group.add_argument('-z', '--timezone', metavar='name', default=conf.timezone,
		help='Timezone name for feed times and default departure time. Default: %(default)s')

	group = parser.add_argument_group('Misc/debug options')
	group.add_argument('--dot-for-routes', metavar='path',
		help='Dump Node/Route/Transfer graph (in graphviz dot format) to a specified file and exit.')
	group.add_argument('--dot-opts', metavar='yaml-data',
		help='Options for graphviz graph/nodes/edges to use with'
			' --dot-for-routes, as a YAML mappings. Example: {graph: {rankdir: LR}}')
	group.add_argument('--engine-conf', metavar='yaml-data',
		help='Override values for EngineConf as a YAML mapping.'
			' Example: {max_rounds: 5}')
	group.add_argument('--debug', action='store_true', help='Verbose operation mode.')

	cmds = parser.add_subparsers(title='Commands', dest='call')

	cmd = cmds.add_parser('query', help='Find journeys between two nodes.')
	cmd.add_argument('node_from',
		help='Node to start journey from - id, code or name search query.')
	cmd.add_argument('node_to',
		help='Node to find journeys to - id, code or name search query.')
	cmd.add_argument('departure_time', nargs='?',
		help='Departure time, either as [YYYY-MM-DD ]HH:MM[:SS]'
			' or seconds since midnight. Default is current time.')

	cmd = cmds.add_parser('nodes', help='List all nodes or ones matching search query.')
	cmd.add_argument('query', nargs='?', help='Words to look up in node names, codes and locations.')

	cmd = cmds.add_parser('station', help='Show routes, transfers and notifications for a node.')
	cmd.add_argument('node', help='Node id, code or name search query.')

	cmd = cmds.add_parser('schedule', help='Show stops of a route with their times.')
	cmd.add_argument('route', help='Route id.')
	cmd.add_argument('departure_time', nargs='?',
		help='Departure time from the first stop,'
			' same format as for "query" command. Default is current time.')

	cmd = cmds.add_parser('notifications', help='List all feed notifications.')

	opts = parser.parse_args(sys.argv[1:] if args is None else args)

	rr.u.logging.basicConfig(
		format='%(asctime)s :: %(name)s %(levelname)s :: %(message)s',
		datefmt='%Y-%m-%d %H:%M:%S',
		level=rr.u.logging.DEBUG if opts.debug else rr.u.logging.WARNING )

	if not opts.call and not opts.dot_for_routes:
		parser.error('Command or --dot-for-routes option must be specified.')

	try: tz = pytz.timezone(opts.timezone)
	except pytz.UnknownTimeZoneError: parser.error('Unknown timezone: {!r}'.format(opts.timezone))
	conf.timezone = opts.timezone

	if opts.engine_conf:
		engine_conf = yaml.safe_load(opts.engine_conf)
		if not isinstance(engine_conf, dict):
			parser.error('--engine-conf must be a YAML mapping, not: {!r}'.format(opts.engine_conf))
		for k, v in engine_conf.items():
			if not hasattr(conf_engine, k):
				parser.error('Unrecognized engine conf option: {!r} (value: {!r})'.format(k, v))
			setattr(conf_engine, k, v)

	try:
		feed_graph, router = rr.init_feed_router(
			opts.feed_path, conf=conf, conf_engine=conf_engine, timer_func=rr.calc_timer )
	except (rr.feed.FeedError, rr.engine.EngineError) as err:
		parser.error('Failed to initialize router: {}'.format(err))

	dot_opts = dict()
	if opts.dot_opts:
		dot_opts = yaml.safe_load(opts.dot_opts)
		if not isinstance(dot_opts, dict) or not all(isinstance(v, dict) for v in dot_opts.values()):
			parser.error('--dot-opts must be a YAML mapping of mappings, not: {!r}'.format(opts.dot_opts))
	if opts.dot_for_routes:
		with rr.u.safe_replacement(opts.dot_for_routes) as dst:
			rr.vis.dot_for_routes(feed_graph, dst, dot_opts=dot_opts)
		return

	def resolve_node(ref):
		node = feed_graph.resolve_node(ref)
		if not node: parser.error('Failed to find node matching: {!r}'.format(ref))
		log.debug('Resolved node {!r} to: {!r}', ref, node)
		return node

	def departure_time(value):
		try: return parse_departure_time(value, tz)
		except ValueError: parser.error('Failed to parse departure time: {!r}'.format(value))

	if opts.call == 'query':
		a, b = resolve_node(opts.node_from), resolve_node(opts.node_to)
		journeys = router.calculate(a, b, departure_time(opts.departure_time))
		journeys.pretty_print()

	elif opts.call == 'nodes':
		print_nodes(feed_graph.search_nodes(opts.query) if opts.query else feed_graph.nodes)

	elif opts.call == 'station': print_station(feed_graph, resolve_node(opts.node))

	elif opts.call == 'schedule':
		route = feed_graph.get_route(opts.route)
		if not route: parser.error('Unknown route id: {!r}'.format(opts.route))
		print_schedule(feed_graph, route, departure_time(opts.departure_time))

	elif opts.call == 'notifications': print_notifications(feed_graph.notifications)

	else: parser.error('Action not implemented: {}'.format(opts.call))

if __name__ == '__main__': sys.exit(main())
