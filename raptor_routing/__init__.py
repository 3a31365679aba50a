import itertools as it, operator as op, functools as ft
import time

from . import engine, vis, feed, utils as u, types as t


def calc_timer(func, *args, log=u.get_logger('rr.timer'), timer_name=None, **kws):
	if not timer_name:
		func_base = func if not isinstance(func, ft.partial) else func.func
		timer_name = '.'.join([func_base.__module__.strip('__'), func_base.__qualname__])
	log.debug('[{}] Starting...', timer_name)
	td = time.monotonic()
	data = func(*args, **kws)
	td = time.monotonic() - td
	log.debug('[{}] Finished in: {:.1f}s', timer_name, td)
	return data


def init_feed_router(
		feed_path, conf=None, conf_engine=None, timer_func=None, log=u.get_logger('rr.init') ):
	'''Load Feed graph from YAML path and return (feed_graph, router) tuple.
		Router uses timezone from FeedConf for its default departure times.'''
	if not conf: conf = feed.FeedConf()

	feed_func, router_func = feed.parse_feed,\
		ft.partial(engine.RaptorEngine, conf=conf_engine, tz=conf.timezone, timer_func=timer_func)
	if timer_func:
		feed_func, router_func = (
			ft.partial(timer_func, func) for func in [feed_func, router_func] )

	feed_graph = feed_func(feed_path, conf)
	log.debug(
		'Loaded feed: nodes={:,}, routes={:,}, transfers={:,}, notifications={:,}',
		len(feed_graph.nodes), len(feed_graph.routes),
		len(feed_graph.transfers), len(feed_graph.notifications) )

	return feed_graph, router_func(feed_graph)
