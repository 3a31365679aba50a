import itertools as it, operator as op, functools as ft
from collections import OrderedDict
from collections.abc import Mapping
from pathlib import Path

from . import utils as u, types as t


log = u.get_logger('rr.feed')


@u.attr_struct(vals_to_attrs=True)
class FeedConf:

	# pytz zone name for wall-clock times of the feed.
	# Departure time for queries defaults to "now" in this timezone.
	timezone = 'Europe/Amsterdam'

	# Suffix for per-section files, when loading feed from a directory
	file_ext = '.yaml'


feed_sections = 'agencies', 'modalities', 'nodes', 'transfers', 'routes', 'notifications'

# Built-in modalities, which feed "modalities" section can override or extend
modality_defaults = OrderedDict([
	('rail', dict(icon='train', name='Trein', node_name='Treinstation')),
	('subway', dict(icon='train-subway', name='Metro', node_name='Metrostation')),
	('tram', dict(icon='train-tram', name='Tram', node_name='Tramhalte')),
	('ferry', dict(icon='ferry', name='Veerboot', node_name='Veerhaven')),
	('funicular', dict(icon='cable-car', name='Funiculaire', node_name='Funiculaire')),
	('elevator', dict(icon='elevator', name='Lift', node_name='Lift')),
	('hyperloop', dict(icon='bolt', name='Hyperloop', node_name='Hyperloopstation')),
	('eqh', dict(icon='horse-head', name='Flexpaard', node_name='Flexpaardhub')) ])

notification_types = dict(
	disruption=dict(icon='triangle-exclamation', color='danger', name='Storing'),
	construction=dict(icon='road-barrier', color='warning', name='Werkzaamheden') )


class FeedError(Exception): pass


def load_feed_data(path, conf=None):
	'''Load raw feed sections from YAML.
		Path can be a directory with one file per section
			(e.g. nodes.yaml, missing ones are empty) or a single file with all sections.'''
	conf, path = conf or FeedConf(), Path(path)
	if path.is_dir():
		data = dict()
		for k in feed_sections:
			p = path / '{}{}'.format(k, conf.file_ext)
			if not p.exists():
				log.debug('Feed section file missing, assuming empty: {}', p)
				continue
			log.debug('Processing feed file: {}', p)
			with p.open(encoding='utf-8') as src: data[k] = u.yaml_load(src)
	elif path.is_file():
		with path.open(encoding='utf-8') as src: data = u.yaml_load(src)
	else: raise FeedError('Feed path does not exist: {}'.format(path))
	if data is None: data = dict()
	if not isinstance(data, Mapping):
		raise FeedError('Feed data must be a mapping of sections, not {}'.format(type(data).__name__))
	for k in set(data).difference(feed_sections):
		log.warning('Ignoring unrecognized feed section: {!r}', k)
	return data


def _section(data, k):
	items = data.get(k) or dict()
	if not isinstance(items, Mapping):
		raise FeedError('Feed section {!r} must be a mapping of id to properties'.format(k))
	for item_id, props in items.items():
		if props is None: props = dict()
		if not isinstance(props, Mapping):
			raise FeedError('Invalid {} definition (must be a mapping): {!r}'.format(k, item_id))
		yield str(item_id), props

def _time_value(value, desc):
	try: dts = u.dts_parse(value)
	except (TypeError, ValueError):
		raise FeedError('Invalid time value for {}: {!r}'.format(desc, value))
	if dts < 0: raise FeedError('Negative time value for {}: {!r}'.format(desc, value))
	return dts

def _node_ref(nodes, node_id, desc):
	try: return nodes[str(node_id)]
	except KeyError: raise FeedError('Unknown node {!r} referenced from {}'.format(node_id, desc))

def _optional_ref(items, item_id, kind, desc):
	if item_id is None: return
	item = items.get(str(item_id))
	if not item: log.warning('Could not find {} {!r} referenced from {}', kind, item_id, desc)
	return item


def parse_route_stops(route_id, stops_data, nodes):
	'Return RouteStop tuple from either a list of stops or {sequence: stop} mapping.'
	if isinstance(stops_data, Mapping):
		try: stops_data = sorted((int(k), v) for k, v in stops_data.items())
		except (TypeError, ValueError):
			raise FeedError('Stop sequence numbers must be ints for route {!r}'.format(route_id))
	else: stops_data = list(enumerate(stops_data or list(), 1))

	stops = list()
	for seq, stop in stops_data:
		desc = 'route {!r} stop {}'.format(route_id, seq)
		if not isinstance(stop, Mapping): stop = dict(node=stop)
		if 'node' not in stop: raise FeedError('Missing node for {}'.format(desc))
		stops.append(t.feed.RouteStop(
			seq, _node_ref(nodes, stop['node'], desc),
			time=_time_value(stop.get('time', 0), desc),
			halts=bool(stop.get('halts', True)),
			cancelled=bool(stop.get('cancelled', False)),
			platform=stop.get('platform') or None ))
	return tuple(stops)


def parse_feed_data(data):
	'Build Feed from raw section mappings, resolving all id references.'
	agencies = OrderedDict()
	for agency_id, props in _section(data, 'agencies'):
		agencies[agency_id] = t.feed.Agency( agency_id, props.get('name', agency_id),
			**dict((k, props.get(k)) for k in ['abbr', 'url', 'description']) )

	modalities, modalities_data = OrderedDict(), OrderedDict(modality_defaults)
	for modality_id, props in _section(data, 'modalities'):
		modalities_data[modality_id] = dict(modalities_data.get(modality_id, dict()), **props)
	for modality_id, props in modalities_data.items():
		props = dict(props)
		if 'nodeName' in props: props.setdefault('node_name', props.pop('nodeName'))
		modalities[modality_id] = t.feed.Modality(modality_id, **dict( (k, props.get(k))
			for k in ['name', 'node_name', 'abbr', 'icon', 'url', 'description'] ))

	nodes = OrderedDict()
	for node_id, props in _section(data, 'nodes'):
		nodes[node_id] = t.feed.Node(
			node_id, props.get('name', node_id),
			code=props.get('code'), url=props.get('url'),
			modality=_optional_ref(modalities, props.get('modality'), 'modality', 'node {!r}'.format(node_id)),
			location=props.get('location'), icon=props.get('icon') )

	transfers = OrderedDict()
	for transfer_id, props in _section(data, 'transfers'):
		desc = 'transfer {!r}'.format(transfer_id)
		for k in 'between', 'and', 'time':
			if k not in props: raise FeedError('Missing {!r} value for {}'.format(k, desc))
		transfers[transfer_id] = t.feed.Transfer( transfer_id,
			_node_ref(nodes, props['between'], desc), _node_ref(nodes, props['and'], desc),
			time=_time_value(props['time'], desc),
			separate=bool(props.get('separate', False)) )

	routes = OrderedDict()
	for route_id, props in _section(data, 'routes'):
		desc = 'route {!r}'.format(route_id)
		stops = parse_route_stops(route_id, props.get('stops'), nodes)
		if len(stops) < 2: raise FeedError('Route {!r} must have at least two stops'.format(route_id))
		color = props.get('color') or dict()
		if not isinstance(color, Mapping): color = dict(background=color)
		routes[route_id] = t.feed.Route(
			route_id, props.get('name', route_id), stops,
			abbr=props.get('abbr'), url=props.get('url'),
			agency=_optional_ref(agencies, props.get('agency'), 'agency', desc),
			modality=_optional_ref(modalities, props.get('modality'), 'modality', desc),
			headsign=props.get('headsign') or stops[-1].node.name,
			color=t.feed.RouteColor(**dict(
				(k, color[k]) for k in ['background', 'text'] if color.get(k) )),
			icon=props.get('icon') )

	notifications = OrderedDict()
	for notification_id, props in _section(data, 'notifications'):
		desc = 'notification {!r}'.format(notification_id)
		ntype = props.get('type', 'disruption')
		ntype_info = notification_types.get(ntype)
		if not ntype_info:
			log.warning('Unknown notification type {!r} for {}', ntype, desc)
			ntype_info = dict()
		affected = dict()
		for k, items, kind in [('nodes', nodes, 'node'), ('routes', routes, 'route')]:
			refs = u.get_any(props, 'affected_{}'.format(k), 'affected{}'.format(k.title())) or list()
			affected[k] = tuple(filter(None, (_optional_ref(items, ref, kind, desc) for ref in refs)))
		period = props.get('period')
		notifications[notification_id] = t.feed.Notification(
			notification_id, ntype,
			name=props.get('name') or ntype_info.get('name'),
			description=props.get('description'),
			period=None if period is None else str(period),
			affected_nodes=affected['nodes'], affected_routes=affected['routes'],
			icon=props.get('icon') or ntype_info.get('icon', 'circle-info'),
			color=props.get('color') or ntype_info.get('color', 'info') )

	feed = t.feed.Feed( agencies.values(), modalities.values(),
		nodes.values(), transfers.values(), routes.values(), notifications.values() )
	log.debug(
		'Parsed feed: agencies={:,}, nodes={:,}, transfers={:,},'
			' routes={:,} (mean-stops={:,.1f}), notifications={:,}',
		len(agencies), len(nodes), len(transfers), len(routes),
		(sum(map(len, routes.values())) / len(routes)) if routes else 0, len(notifications) )
	return feed

def parse_feed(path, conf=None):
	'Parse Feed from YAML feed directory or file.'
	return parse_feed_data(load_feed_data(path, conf))
