#!/usr/bin/env python3

"""Queue of data packets waiting for a route.

"""

import collections

from .common import *
from . import logging

class QueueEntry (object):
    """A buffered packet.  "ucb" is the forwarding callback, called
    as ucb (route, packet) once a route is known; "ecb" is the error
    callback, called as ecb (packet, reason) if the packet is dropped.
    "oif" is the outgoing Interface requested by the sender, if any.
    """
    def __init__ (self, packet, ucb, ecb = None, oif = None):
        self.packet = packet
        self.ucb = ucb
        self.ecb = ecb
        self.oif = oif
        self.queued = None

    @property
    def dst (self):
        return self.packet.destination

    def drop (self, reason):
        logging.trace ("Dropping queued packet for {}: {}", self.dst, reason)
        if self.ecb:
            self.ecb (self.packet, reason)

class PendingQueue (Element):
    def __init__ (self, parent, maxlen, maxtime):
        super ().__init__ (parent)
        self.maxlen = maxlen
        self.maxtime = maxtime
        self.queue = collections.deque ()

    def __len__ (self):
        self.purge ()
        return len (self.queue)

    def enqueue (self, entry):
        """Add an entry at the end of the queue.  Returns False if
        the same packet is already queued for that destination.  If
        the queue is full, the oldest entry is dropped to make room.
        """
        self.purge ()
        for e in self.queue:
            if e.packet is entry.packet and e.dst == entry.dst:
                return False
        entry.queued = self.node.timers.now
        if len (self.queue) >= self.maxlen:
            self.queue.popleft ().drop (OVERFLOW)
        self.queue.append (entry)
        return True

    def dequeue (self, dst):
        """Remove and return the oldest entry for "dst", or None.
        """
        self.purge ()
        for e in self.queue:
            if e.dst == dst:
                self.queue.remove (e)
                return e
        return None

    def find (self, dst):
        self.purge ()
        return any (e.dst == dst for e in self.queue)

    def drop_dst (self, dst, reason = UNREACHABLE):
        """Drop all entries for "dst", reporting "reason" to each.
        Returns the number of packets dropped.
        """
        self.purge ()
        dropped = [ e for e in self.queue if e.dst == dst ]
        if dropped:
            self.queue = collections.deque (e for e in self.queue
                                            if e.dst != dst)
            logging.debug ("Dropping {} queued packets for {}",
                           len (dropped), dst)
        for e in dropped:
            e.drop (reason)
        return len (dropped)

    def purge (self):
        "Drop entries that have been waiting too long"
        limit = self.node.timers.now - self.maxtime
        while self.queue and self.queue[0].queued < limit:
            self.queue.popleft ().drop (TIMEOUT)

    def clear (self):
        self.queue.clear ()
