#!/usr/bin/env python3

"""AODV route table.

There is at most one entry per destination.  Entries are live objects:
callers look one up and then modify it in place.  Expiry is handled
lazily; every read purges expired entries first.
"""

from .common import *
from . import logging

# Route states
VALID = 0
INVALID = 1
IN_SEARCH = 2

statenames = { VALID : "valid", INVALID : "invalid", IN_SEARCH : "in search" }

class RouteEntry (Element):
    """A route table entry.  Its parent is the RouteTable.
    """
    def __init__ (self, table, dst, iface = None, next_hop = ANY,
                  hop = 1, seqno = 0, valid_seqno = False,
                  lifetime = 0.0, flag = VALID):
        super ().__init__ (table)
        self.dst = Ipaddr (dst)
        self.iface = iface
        self.next_hop = Ipaddr (next_hop)
        self.hop = hop
        self.seqno = seqno
        self.valid_seqno = valid_seqno
        self.flag = flag
        self.expires = self.node.timers.now + lifetime
        self.precursors = [ ]
        self.rreq_cnt = 0
        self.blacklisted_until = None
        self.ack_timer = None
        # EOCW path metrics, as learned from the Route Reply that
        # created this route.
        self.min_energy = 1.0
        self.avg_congestion = 1.0
        self.score = None

    def __str__ (self):
        return "{} via {} hops {} seq {}{} {}".format (self.dst,
                                                       self.next_hop,
                                                       self.hop,
                                                       self.seqno,
                                                       "" if self.valid_seqno else "?",
                                                       statenames[self.flag])

    def lifetime (self):
        "Remaining lifetime (negative if expired)"
        return self.expires - self.node.timers.now

    def set_lifetime (self, lifetime):
        self.expires = self.node.timers.now + lifetime

    def extend (self, lifetime):
        "Make sure the entry lives at least another 'lifetime' seconds"
        self.expires = max (self.expires, self.node.timers.now + lifetime)

    def add_precursor (self, addr):
        if addr not in self.precursors:
            self.precursors.append (Ipaddr (addr))
            return True
        return False

    def remove_precursor (self, addr):
        try:
            self.precursors.remove (addr)
            return True
        except ValueError:
            return False

    def invalidate (self, lifetime):
        self.flag = INVALID
        self.rreq_cnt = 0
        self.set_lifetime (lifetime)

    def is_unidirectional (self):
        return self.blacklisted_until is not None and \
               self.blacklisted_until > self.node.timers.now

    def stop_ack (self):
        if self.ack_timer:
            self.node.timers.stop (self.ack_timer)
            self.ack_timer = None

    def route (self):
        return Route (self.dst, self.iface.address, self.next_hop, self.iface)

class RouteTable (Element):
    def __init__ (self, parent, bad_link_lifetime):
        super ().__init__ (parent)
        self.routes = dict ()
        self.bad_link_lifetime = bad_link_lifetime

    def __len__ (self):
        return len (self.routes)

    def __iter__ (self):
        self.purge ()
        return iter (list (self.routes.values ()))

    def __contains__ (self, dst):
        return self.lookup (dst) is not None

    def entry (self, dst, **kwargs):
        "Make a new RouteEntry belonging to this table (but don't add it)"
        return RouteEntry (self, dst, **kwargs)

    def lookup (self, dst):
        """Return the entry for "dst" in any state, or None.
        """
        self.purge ()
        return self.routes.get (dst, None)

    def lookup_valid (self, dst):
        """Return the entry for "dst" if it is usable for forwarding,
        or None.
        """
        rt = self.lookup (dst)
        if rt and rt.flag == VALID:
            return rt
        return None

    def add (self, rt):
        """Add a new entry.  Returns False if there already is one for
        that destination.
        """
        self.purge ()
        if rt.dst in self.routes:
            return False
        self.routes[rt.dst] = rt
        logging.trace ("Added route {}", rt)
        return True

    def fresher (self, rt, old):
        """Return True if "rt" should replace "old", according to the
        sequence number freshness rule.
        """
        if not old.valid_seqno:
            return True
        d = seqnewer (rt.seqno, old.seqno)
        if d > 0:
            return True
        if d == 0:
            return old.flag != VALID or rt.hop < old.hop
        return False

    def upsert (self, rt):
        """Add "rt", or replace the existing entry for that destination
        if "rt" is fresher.  Returns True if the table was changed.
        """
        self.purge ()
        old = self.routes.get (rt.dst, None)
        if old is None:
            self.routes[rt.dst] = rt
            logging.trace ("Added route {}", rt)
            return True
        if not self.fresher (rt, old):
            return False
        self.replace (old, rt)
        return True

    def replace (self, old, rt):
        """Unconditionally replace entry "old" by "rt", keeping the
        precursor list and link state of the old one.
        """
        for p in old.precursors:
            rt.add_precursor (p)
        if rt.ack_timer is None:
            rt.ack_timer = old.ack_timer
        elif old.ack_timer is not rt.ack_timer:
            old.stop_ack ()
        if rt.blacklisted_until is None:
            rt.blacklisted_until = old.blacklisted_until
        self.routes[rt.dst] = rt
        logging.trace ("Updated route {}", rt)

    def delete (self, dst):
        rt = self.routes.pop (dst, None)
        if rt:
            rt.stop_ack ()
            logging.debug ("Deleted route to {}", dst)
            return True
        return False

    def delete_all_from_interface (self, iface):
        for dst in [ dst for dst, rt in self.routes.items ()
                     if rt.iface is iface ]:
            self.delete (dst)

    def clear (self):
        for rt in self.routes.values ():
            rt.stop_ack ()
        self.routes.clear ()

    def invalidate (self, dst, seqno = None):
        """Mark the route to "dst" invalid, if it is currently valid.
        The sequence number is kept (or set to "seqno", if that is
        supplied and not older) so it can be used in freshness checks
        of the next discovery.
        """
        rt = self.routes.get (dst, None)
        if rt is None or rt.flag != VALID:
            return False
        if seqno is not None and seqnewer (seqno, rt.seqno) >= 0:
            rt.seqno = seqno
        rt.invalidate (self.bad_link_lifetime)
        logging.debug ("Invalidated route {}", rt)
        return True

    def invalidate_all (self, unreachable):
        "Invalidate the routes in the supplied dst -> seqno mapping"
        for dst, seqno in unreachable.items ():
            self.invalidate (dst, seqno)

    def destinations_via (self, next_hop):
        """Return a dictionary, keyed by destination, giving the
        sequence number of each valid route that uses "next_hop".
        """
        self.purge ()
        return { dst : rt.seqno for dst, rt in self.routes.items ()
                 if rt.flag == VALID and rt.next_hop == next_hop }

    def mark_unidirectional (self, neighbor, timeout):
        rt = self.routes.get (neighbor, None)
        if rt is None:
            return False
        rt.blacklisted_until = self.node.timers.now + timeout
        logging.debug ("Link to {} is unidirectional, blacklisted for {} s",
                       neighbor, timeout)
        return True

    def purge (self):
        """Expire entries.  A valid route whose lifetime is over becomes
        invalid, and an invalid route whose lifetime is over is deleted.
        Routes still being searched for are left to the discovery logic.
        """
        now = self.node.timers.now
        for dst, rt in list (self.routes.items ()):
            if rt.expires >= now:
                continue
            if rt.flag == INVALID:
                self.delete (dst)
            elif rt.flag == VALID:
                rt.invalidate (self.bad_link_lifetime)
                logging.debug ("Route {} expired", rt)
