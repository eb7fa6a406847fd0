#!/usr/bin/env python3

"""AODV neighbor monitoring.

A neighbor is kept alive by traffic from it (hellos in particular).
If nothing is heard before its listen timer runs out, or the link
layer reports that a transmission to it failed, the link is declared
broken and the routing layer is told.
"""

from .common import *
from . import logging
from . import timers

class Neighbor (Element, timers.Timer):
    """A neighbor.  Its parent is the Neighbors object.
    """
    def __init__ (self, parent, addr):
        Element.__init__ (self, parent)
        timers.Timer.__init__ (self)
        self.addr = Ipaddr (addr)

    def __str__ (self):
        return "neighbor {}".format (self.addr)

    def dispatch (self, item):
        if isinstance (item, timers.Timeout):
            self.parent.expired (self)

    def alive (self, lifetime):
        """Restart the listen timer, unless it already runs longer.
        """
        left = self.node.timers.remaining (self)
        if left is None or left < lifetime:
            self.node.timers.start (self, lifetime)

    def expires (self):
        return self.due

class Neighbors (Element):
    """The set of neighbors.  If "monitor" is False (hello messages
    are not in use) a neighbor that goes quiet is simply forgotten;
    only transmit failures count as link breaks.
    """
    def __init__ (self, parent, monitor = True):
        super ().__init__ (parent)
        self.monitor = monitor
        self.neighbors = dict ()

    def __contains__ (self, addr):
        return addr in self.neighbors

    def __len__ (self):
        return len (self.neighbors)

    def update (self, addr, lifetime):
        """Note that "addr" was heard from, and should be considered
        alive for at least "lifetime" seconds.
        """
        try:
            nb = self.neighbors[addr]
        except KeyError:
            nb = self.neighbors[addr] = Neighbor (self, addr)
            logging.trace ("New neighbor {}", addr)
        nb.alive (lifetime)

    def expires (self, addr):
        try:
            return self.neighbors[addr].expires ()
        except KeyError:
            return None

    def tx_error (self, addr):
        """The link layer failed to deliver a frame to "addr".
        """
        nb = self.neighbors.get (addr, None)
        if nb:
            logging.debug ("Transmit failure to neighbor {}", addr)
            self.down (nb)
        else:
            # Not a neighbor we were tracking, but routes may still use it
            self.parent.link_broken (Ipaddr (addr))

    def expired (self, nb):
        if self.monitor:
            logging.debug ("Neighbor {} timed out", nb.addr)
            self.down (nb)
        else:
            del self.neighbors[nb.addr]

    def down (self, nb):
        self.node.timers.stop (nb)
        del self.neighbors[nb.addr]
        self.parent.link_broken (nb.addr)

    def clear (self):
        for nb in self.neighbors.values ():
            self.node.timers.stop (nb)
        self.neighbors.clear ()
