from . import base, feed, public
