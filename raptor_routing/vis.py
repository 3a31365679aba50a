# Visualization tools, mostly useful for debugging feed data

import itertools as it, operator as op, functools as ft
from collections import OrderedDict
import contextlib


print_fmt = lambda tpl, *a, file=None, end='\n', **k:\
	print(tpl.format(*a,**k), file=file, end=end)

dot_str = lambda n: '"{}"'.format(str(n).replace('"', '\\"'))
dot_html = lambda n: '<{}>'.format(n)
html_escape = lambda n: str(n).replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;')


@contextlib.contextmanager
def dot_graph(dst, dot_opts, indent=2):
	print_fmt('digraph {{', file=dst)
	if isinstance(indent, int): indent = ' '*indent
	p = lambda tpl, *a, end='\n', **k:\
		print_fmt(indent + tpl, *a, file=dst, end=end, **k)
	p('### Defaults')
	for t, opts in (dot_opts or dict()).items():
		p('{} [ {} ]'.format(t, ', '.join('{}={}'.format(k, v) for k, v in opts.items())))
	yield p
	print_fmt('}}', file=dst)


def dot_for_routes(feed, dst, dot_opts=None):
	'''Dump Node/Route graph with Transfers (as dashed undirected edges)
		in graphviz dot format. Non-halting stops are drawn with dotted edges.'''
	node_routes, route_edges = OrderedDict(), OrderedDict()
	for node in feed.nodes: node_routes[node] = list()
	for route in feed.routes:
		stop_prev = None
		for n, stop in enumerate(route):
			node_routes.setdefault(stop.node, list()).append('{}[{}]'.format(route.display_name, n))
			if stop_prev:
				edge = stop_prev.node, stop.node
				if stop_prev.halts and stop.halts: route_edges[edge] = 'solid'
				else: route_edges.setdefault(edge, 'dotted')
			stop_prev = stop

	node_name = lambda node: 'node-{}'.format(node.id)
	with dot_graph(dst, dot_opts) as p:

		p('')
		p('### Labels')
		for node, route_names in node_routes.items():
			label = '<b>{}</b>{}'.format( html_escape(node.name),
				'<br/>- '.join([''] + list(map(html_escape, sorted(route_names)))) )
			p('{} [label={}]'.format(dot_str(node_name(node)), dot_html(label)))

		p('')
		p('### Routes')
		for (node_src, node_dst), style in route_edges.items():
			p( '{} -> {}{}', *map(dot_str, [node_name(node_src), node_name(node_dst)]),
				'' if style == 'solid' else ' [style={}]'.format(style) )

		p('')
		p('### Transfers')
		for transfer in feed.transfers:
			p( '{} -> {} [dir=none, style=dashed, label={}]',
				*map(dot_str, [ node_name(transfer.between),
					node_name(transfer.and_), '{}s'.format(transfer.time) ]) )
