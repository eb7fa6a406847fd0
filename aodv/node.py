#!

"""AODV/Python Node object -- the container for all the parts of one node

"""

from .common import *
from . import logging
from . import routing
from . import providers

class Node (object):
    """A Node object is the outermost container for all the other objects
    that make up one AODV node.  Any number of them can share a single
    Scheduler, which is how a whole network is emulated within a single
    process.

    The transport is shared too; it delivers received control messages
    by calling receive, and reports failed transmissions by calling
    tx_error.  If no energy or congestion provider is supplied, they
    are built from the "node" line of the configuration.
    """
    def __init__ (self, config, scheduler, transport, energy = None,
                  congestion = None, name = None):
        self.node = self
        self.config = config
        self.timers = scheduler
        self.transport = transport
        if energy is None:
            energy = providers.FixedEnergy (config.node.energy)
        if congestion is None:
            congestion = providers.QueueCongestion (config.node.queue_capacity)
        self.energy = energy
        self.congestion = congestion
        self.interfaces = [ Interface (p.name, p.address, p.broadcast)
                            for p in config.interface.values () ]
        if name is None:
            if self.interfaces:
                name = str (self.interfaces[0].address)
            else:
                name = "node"
        self.nodename = name
        logging.debug ("Initializing node {}", self.nodename)
        self.routing = routing.RoutingProtocol (self, config)

    def __str__ (self):
        return self.nodename

    def addwork (self, work, handler = None, delay = 0):
        """Add a work item (instance of a Work subclass) to the
        scheduler.  If "handler" is specified, set the owner of the
        work item to that value, overriding the handler specified when
        the Work object was created.
        """
        if handler is not None:
            work.owner = handler
        self.timers.addwork (work, delay)

    def start (self):
        logging.info ("Starting node {}", self.nodename)
        self.routing.start ()
        for i in self.interfaces:
            self.routing.interface_up (i)

    def stop (self):
        logging.info ("Stopping node {}", self.nodename)
        self.routing.stop ()

    def interface (self, name):
        for i in self.interfaces:
            if i.name == name:
                return i
        return None

    def interface_up (self, name):
        i = self.interface (name)
        if i is None:
            raise ConfigError ("Unknown interface {}", name)
        self.routing.interface_up (i)

    def interface_down (self, name):
        i = self.interface (name)
        if i is None:
            raise ConfigError ("Unknown interface {}", name)
        self.routing.interface_down (i)

    def receive (self, data, src, iface, ttl, delay = 0):
        """Queue an AODV control message received from neighbor "src"
        on Interface "iface", with remaining IP TTL "ttl".
        """
        work = Received (self.routing, packet = data, src = src,
                         iface = iface, ttl = ttl)
        self.addwork (work, delay = delay)

    def tx_error (self, addr):
        "The link layer could not deliver a frame to neighbor 'addr'"
        self.routing.tx_error (Ipaddr (addr))

    def route_output (self, pkt, ucb, ecb = None, oif = None):
        return self.routing.route_output (pkt, ucb, ecb, oif)

    def route_input (self, pkt, iface, ucb, lcb, ecb = None):
        return self.routing.route_input (pkt, iface, ucb, lcb, ecb)
