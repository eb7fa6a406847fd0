#!/usr/bin/env python3

"""AODV route discovery.

Each destination being searched for has a Discovery state machine.
It owns the retry timer, does the expanding ring search (the TTL of
each retry grows until the threshold, then jumps to the network
diameter) and gives up after the configured number of network-wide
attempts.
"""

from .common import *
from . import logging
from . import timers
from .table import IN_SEARCH

class Start (Work):
    """Start looking for a route."""

class Resolved (Work):
    """A route reply for this destination has arrived."""

class IdCache (Element):
    """Cache of recently seen (originator, id) pairs.  Entries are
    forgotten "lifetime" seconds after they were first seen.
    """
    def __init__ (self, parent, lifetime):
        super ().__init__ (parent)
        self.lifetime = lifetime
        self.cache = dict ()

    def __len__ (self):
        self.purge ()
        return len (self.cache)

    def purge (self):
        now = self.node.timers.now
        for k in [ k for k, exp in self.cache.items () if exp < now ]:
            del self.cache[k]

    def is_duplicate (self, origin, rid):
        """Return True if (origin, rid) has been seen recently,
        otherwise remember it and return False.
        """
        if (origin, rid) in self:
            return True
        self.add (origin, rid)
        return False

    def __contains__ (self, key):
        self.purge ()
        return key in self.cache

    def add (self, origin, rid):
        self.cache[(origin, rid)] = self.node.timers.now + self.lifetime

    def clear (self):
        self.cache.clear ()

class RateLimit (Element, timers.Timer):
    """Counts messages sent in the current one second window.
    """
    def __init__ (self, parent, name, limit):
        Element.__init__ (self, parent)
        timers.Timer.__init__ (self)
        self.name = name
        self.limit = limit
        self.count = 0

    def __str__ (self):
        return "{} rate limit".format (self.name)

    def start (self):
        self.count = 0
        self.node.timers.start (self, 1.0)

    def stop (self):
        self.node.timers.stop (self)

    def dispatch (self, item):
        if isinstance (item, timers.Timeout):
            self.count = 0
            self.node.timers.start (self, 1.0)

    def exhausted (self):
        return self.count >= self.limit

    def take (self):
        """Count one message.  Returns False if the limit for this
        window has already been reached.
        """
        if self.exhausted ():
            return False
        self.count += 1
        return True

    def remaining (self):
        "Time until the next window starts"
        left = self.node.timers.remaining (self)
        return 1.0 if left is None else left

class Discovery (Element, timers.Timer):
    """Route discovery state machine for one destination.  Its parent
    is the routing layer.

    The current state is the method that handles the next input
    (Start, Resolved, or a Timeout of our own timer).  It returns the
    new state, or None to stay in the current one.
    """
    def __init__ (self, parent, dst):
        Element.__init__ (self, parent)
        timers.Timer.__init__ (self)
        self.dst = Ipaddr (dst)
        self.name = "discovery for {}".format (self.dst)
        self.table = parent.table
        self.deferred = None
        self.state = self.s0

    def __str__ (self):
        return "{}<state: {}>".format (self.name, self.state.__name__)

    def dispatch (self, data):
        newstate = self.state (data)
        if newstate and newstate != self.state:
            self.state = newstate
            logging.trace ("{} now in state {}", self.name,
                           newstate.__name__)

    def stop (self):
        self.node.timers.stop (self)
        if self.deferred:
            self.node.timers.stop (self.deferred)
            self.deferred = None

    def s0 (self, data):
        """No route and no search in progress.
        """
        if isinstance (data, Start):
            logging.debug ("Starting route discovery for {}", self.dst)
            self.send_request ()
            return self.in_search

    def in_search (self, data):
        """A route request has been sent (or is waiting for the rate
        limit) and we are waiting for a reply.
        """
        if isinstance (data, Resolved):
            self.stop ()
            self.parent.discovery_done (self)
            return self.s0
        elif isinstance (data, timers.Timeout):
            rt = self.table.lookup_valid (self.dst)
            if rt:
                self.parent.send_from_queue (self.dst, rt.route ())
                self.parent.discovery_done (self)
                return self.s0
            rt = self.table.lookup (self.dst)
            if rt and rt.rreq_cnt < self.parent.rreq_retries \
                   and rt.flag == IN_SEARCH:
                logging.debug ("Retrying route discovery for {}", self.dst)
                self.send_request ()
                return None
            return self.give_up ()

    def give_up (self):
        logging.debug ("Route discovery for {} failed, destination "
                       "unreachable", self.dst)
        self.stop ()
        self.table.delete (self.dst)
        self.parent.queue.drop_dst (self.dst, UNREACHABLE)
        self.parent.discovery_done (self)
        return self.s0

    def send_request (self):
        """Send a route request, or defer it to the next rate limit
        window if we've used up this one.
        """
        self.deferred = None
        p = self.parent
        if not p.rreq_limit.take ():
            delay = p.rreq_limit.remaining () + 0.0001
            logging.trace ("Route request for {} deferred {:.4f} s by "
                           "rate limit", self.dst, delay)
            self.deferred = self.node.timers.call_later (delay,
                                                         self.send_request)
            return
        ttl = p.ttl_start
        rt = self.table.lookup (self.dst)
        if rt:
            if rt.flag != IN_SEARCH:
                ttl = min (rt.hop + p.ttl_increment, p.net_diameter)
            else:
                ttl = rt.hop + p.ttl_increment
                if ttl > p.ttl_threshold:
                    ttl = p.net_diameter
            if ttl == p.net_diameter:
                rt.rreq_cnt += 1
            seqno = rt.seqno if rt.valid_seqno else None
            rt.hop = ttl
            rt.flag = IN_SEARCH
            rt.set_lifetime (p.path_discovery_time)
        else:
            seqno = None
            rt = self.table.entry (self.dst, hop = ttl, flag = IN_SEARCH,
                                   lifetime = p.path_discovery_time)
            if ttl == p.net_diameter:
                rt.rreq_cnt += 1
            self.table.add (rt)
        p.originate_request (self.dst, ttl, seqno)
        self.node.timers.start (self, self.backoff (rt))

    def backoff (self, rt):
        """Time to wait for a reply to the request just sent.  Within
        the expanding ring it is proportional to the TTL; once requests
        go network wide it doubles with each attempt.
        """
        p = self.parent
        if rt.hop < p.net_diameter:
            return 2 * p.node_traversal_time * (rt.hop + p.timeout_buffer)
        return p.net_traversal_time * (1 << max (0, rt.rreq_cnt - 1))
