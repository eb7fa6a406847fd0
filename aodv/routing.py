#!/usr/bin/env python3

"""AODV routing layer.

This is the protocol instance of one node.  It answers the network
layer's two questions (how do I send this packet, and what do I do
with this packet I just received), handles the four AODV control
messages, and keeps routes alive or tears them down as links come and
go.
"""

import random

from .common import *
from . import logging
from . import timers
from . import messages
from . import table
from . import queue
from . import neighbors
from . import discovery
from . import eocw
from .table import VALID, IN_SEARCH

def jitter (ms = 10):
    "Random delay of 0 to 'ms' milliseconds, in whole milliseconds"
    return random.randint (0, ms) / 1000

class RoutingProtocol (Element):
    """The AODV routing layer.  Its parent is the Node, which supplies
    the scheduler ("timers"), the transport and the energy and
    congestion providers.
    """
    def __init__ (self, parent, config):
        super ().__init__ (parent)
        p = config.routing
        self.rreq_retries = p.rreq_retries
        self.ttl_start = p.ttl_start
        self.ttl_increment = p.ttl_increment
        self.ttl_threshold = p.ttl_threshold
        self.timeout_buffer = p.timeout_buffer
        self.node_traversal_time = p.node_traversal_time
        self.net_diameter = p.net_diameter
        self.active_route_timeout = p.active_route_timeout
        self.net_traversal_time = p.net_traversal_time
        self.path_discovery_time = p.path_discovery_time
        self.my_route_timeout = p.my_route_timeout
        self.blacklist_timeout = p.blacklist_timeout
        self.delete_period = p.delete_period
        self.next_hop_wait = p.next_hop_wait
        self.hello_interval = p.hello_interval
        self.allowed_hello_loss = p.allowed_hello_loss
        self.destination_only = p.destination_only
        self.gratuitous_reply = p.gratuitous_reply
        self.enable_hello = p.enable_hello
        self.enable_broadcast = p.enable_broadcast
        self.enable_fuzzy = p.enable_fuzzy
        self.table = table.RouteTable (self, self.delete_period)
        self.queue = queue.PendingQueue (self, p.max_queue_len,
                                         p.max_queue_time)
        self.neighbors = neighbors.Neighbors (self, self.enable_hello)
        self.rreq_cache = discovery.IdCache (self, self.path_discovery_time)
        self.dpd = discovery.IdCache (self, self.path_discovery_time)
        self.answered = discovery.IdCache (self, self.path_discovery_time)
        self.collector = eocw.PathCollector (self)
        self.rreq_limit = discovery.RateLimit (self, "route request",
                                               p.rreq_rate_limit)
        self.rerr_limit = discovery.RateLimit (self, "route error",
                                               p.rerr_rate_limit)
        self.hello_timer = timers.CallbackTimer (self.hello_expired)
        self.discoveries = dict ()
        self.interfaces = [ ]
        self.seqno = 0
        self.request_id = 0
        self.last_bcast = None
        self.running = False

    def __str__ (self):
        return "AODV routing for {}".format (self.node)

    def start (self):
        self.running = True
        self.rreq_limit.start ()
        self.rerr_limit.start ()
        if self.enable_hello:
            self.node.timers.start (self.hello_timer, jitter (100))

    def stop (self):
        self.running = False
        self.rreq_limit.stop ()
        self.rerr_limit.stop ()
        self.node.timers.stop (self.hello_timer)
        self.collector.stop ()
        self.answered.clear ()
        for d in list (self.discoveries.values ()):
            d.stop ()
        self.discoveries.clear ()
        self.neighbors.clear ()
        self.table.clear ()
        self.queue.clear ()

    # Local state

    def energy (self):
        return self.node.energy.energy ()

    def congestion (self):
        return self.node.congestion.congestion ()

    def is_my_address (self, addr):
        for i in self.interfaces:
            if i.address == addr:
                return True
        return False

    def next_seqno (self):
        self.seqno = (self.seqno + 1) & maxint[4]
        return self.seqno

    # Interface and address notifications

    def find_interface (self, addr):
        for i in self.interfaces:
            if i.address == addr:
                return i
        return None

    def interface_up (self, iface):
        if iface in self.interfaces:
            return
        logging.debug ("Interface {} up", iface)
        self.interfaces.append (iface)
        rt = self.table.entry (iface.broadcast, iface = iface,
                               next_hop = iface.broadcast, hop = 1,
                               valid_seqno = True, lifetime = INFINITE)
        self.table.add (rt)

    def interface_down (self, iface):
        if iface not in self.interfaces:
            return
        logging.debug ("Interface {} down", iface)
        self.interfaces.remove (iface)
        if not self.interfaces:
            self.node.timers.stop (self.hello_timer)
            self.neighbors.clear ()
            self.table.clear ()
            return
        self.table.delete_all_from_interface (iface)

    def address_added (self, iface):
        """An address was assigned to an interface that is up.  Only
        the first address of an interface matters to us.
        """
        for i in self.interfaces:
            if i.name == iface.name:
                return
        self.interface_up (iface)

    def address_removed (self, addr):
        iface = self.find_interface (addr)
        if iface:
            self.interface_down (iface)

    # Route lookups for the network layer

    def route_output (self, pkt, ucb, ecb = None, oif = None):
        """Find a route for locally originated datagram "pkt".  If
        there is a valid route, return the Route.  Otherwise the
        packet is queued and DEFERRED is returned; it will be handed
        to ucb (route, pkt) once a route is found, or to ecb (pkt,
        reason) if it is dropped.  If "oif" is given, the packet must
        go out that Interface.
        """
        if not self.interfaces:
            return NO_ROUTE
        dst = pkt.destination
        rt = self.table.lookup_valid (dst)
        if rt:
            if oif is not None and rt.iface is not oif:
                return NO_ROUTE
            self.update_lifetime (dst, self.active_route_timeout)
            self.update_lifetime (rt.next_hop, self.active_route_timeout)
            return rt.route ()
        if self.queue.enqueue (queue.QueueEntry (pkt, ucb, ecb, oif)):
            if logging.tracing:
                logging.trace ("Queued packet for {}, {} waiting", dst,
                               len (self.queue))
            if dst not in self.discoveries:
                self.find_route (dst)
        return DEFERRED

    def route_input (self, pkt, iface, ucb, lcb, ecb = None):
        """Handle datagram "pkt" received on "iface".  Local delivery
        is done by calling lcb (pkt, iface), forwarding by calling
        ucb (route, pkt), and a forwarding failure is reported by
        calling ecb (pkt, NO_ROUTE).
        """
        if not self.interfaces:
            return NOT_MINE
        dst = pkt.destination
        origin = pkt.source
        if self.is_my_address (origin):
            return DROPPED
        if dst.ismulticast ():
            return NOT_MINE
        if iface in self.interfaces and (dst == iface.broadcast or
                                         dst == BROADCAST):
            if self.dpd.is_duplicate (origin, pkt.ident):
                if logging.tracing:
                    logging.trace ("Duplicate broadcast {} from {}",
                                   pkt.ident, origin)
                return DROPPED
            self.update_lifetime (origin, self.active_route_timeout)
            lcb (pkt, iface)
            if self.enable_broadcast and pkt.ttl > 1:
                rt = self.table.lookup (dst)
                if rt:
                    ucb (rt.route (), pkt)
            return DELIVERED
        if self.is_my_address (dst):
            self.update_lifetime (origin, self.active_route_timeout)
            to_origin = self.table.lookup_valid (origin)
            if to_origin:
                self.update_lifetime (to_origin.next_hop,
                                      self.active_route_timeout)
                self.neighbors.update (to_origin.next_hop,
                                       self.active_route_timeout)
            lcb (pkt, iface)
            return DELIVERED
        return self.forward (pkt, ucb, ecb)

    def forward (self, pkt, ucb, ecb):
        dst = pkt.destination
        origin = pkt.source
        self.table.purge ()
        rt = self.table.lookup (dst)
        if rt and rt.flag == VALID:
            route = rt.route ()
            art = self.active_route_timeout
            self.update_lifetime (origin, art)
            self.update_lifetime (dst, art)
            self.update_lifetime (route.gateway, art)
            self.neighbors.update (route.gateway, art)
            to_origin = self.table.lookup (origin)
            if to_origin:
                self.update_lifetime (to_origin.next_hop, art)
                self.neighbors.update (to_origin.next_hop, art)
            if logging.tracing:
                logging.trace ("Forwarding packet for {} via {}",
                               dst, route.gateway)
            ucb (route, pkt)
            return FORWARDED
        if rt and rt.valid_seqno:
            seqno = rt.seqno
        else:
            seqno = 0
        logging.debug ("No route to forward packet from {} to {}",
                       origin, dst)
        self.send_rerr_no_route (dst, seqno, origin)
        if ecb:
            ecb (pkt, NO_ROUTE)
        return DROPPED

    def update_lifetime (self, addr, lifetime):
        """Extend the lifetime of the valid route to "addr", if there
        is one.
        """
        rt = self.table.lookup (addr)
        if rt and rt.flag == VALID:
            rt.rreq_cnt = 0
            rt.extend (lifetime)
            return True
        return False

    # Route discovery

    def find_route (self, dst):
        d = self.discoveries[dst] = discovery.Discovery (self, dst)
        d.dispatch (discovery.Start (d))

    def discovery_done (self, d):
        if self.discoveries.get (d.dst, None) is d:
            del self.discoveries[d.dst]

    def originate_request (self, dst, ttl, seqno):
        """Send a route request for "dst" with the given TTL.  "seqno"
        is the last known sequence number for "dst", or None if we
        don't know it.
        """
        self.next_seqno ()
        self.request_id = (self.request_id + 1) & maxint[4]
        req = messages.RouteRequest (gratuitous = int (self.gratuitous_reply),
                                     dest_only = int (self.destination_only),
                                     unknown_seqno = int (seqno is None),
                                     hopcount = 0, id = self.request_id,
                                     dst = dst, dst_seqno = seqno or 0,
                                     origin_seqno = self.seqno,
                                     min_energy = self.energy (),
                                     avg_congestion = self.congestion ())
        logging.debug ("Sending route request {} for {}, TTL {}",
                       self.request_id, dst, ttl)
        for iface in self.interfaces:
            req.origin = iface.address
            self.rreq_cache.is_duplicate (iface.address, self.request_id)
            self.last_bcast = self.node.timers.now
            self.send (req, iface, iface.broadcast, ttl, jitter ())

    def send_from_queue (self, dst, route):
        """Hand the packets waiting for "dst" to their forwarding
        callbacks.
        """
        while True:
            e = self.queue.dequeue (dst)
            if e is None:
                break
            if e.oif is not None and e.oif is not route.iface:
                e.drop (NO_ROUTE)
                continue
            e.packet.source = route.source
            e.ucb (route, e.packet)

    # Control message transmission

    def send (self, pkt, iface, dest, ttl = 1, delay = 0):
        """Send control message "pkt" out "iface" to "dest", now or
        after "delay" seconds.  The message is encoded right away, so
        the caller may reuse the packet object.
        """
        data = pkt.encode ()
        if logging.tracing:
            logging.trace ("Sending to {} on {} TTL {}: {}",
                           dest, iface, ttl, pkt)
        if delay > 0:
            self.node.timers.call_later (delay, self.transmit, data,
                                         iface, dest, ttl)
        else:
            self.transmit (data, iface, dest, ttl)

    def transmit (self, data, iface, dest, ttl):
        if iface not in self.interfaces:
            logging.trace ("Interface {} is down, not sending to {}",
                           iface, dest)
            return
        try:
            self.node.transport.send (self.node, iface, data, dest, ttl)
        except OSError:
            logging.exception ("Error sending to {} on {}", dest, iface)

    # Received control messages

    def dispatch (self, item):
        if isinstance (item, Received):
            self.recv_aodv (item)

    def recv_aodv (self, item):
        iface = item.iface
        if iface not in self.interfaces:
            return
        try:
            pkt = messages.decode (item.packet)
        except DecodeError as e:
            logging.debug ("Invalid AODV message from {} on {}: {}",
                           item.src, iface, e)
            return
        src = Ipaddr (item.src)
        if logging.tracing:
            logging.trace ("Received from {} on {}: {}", src, iface, pkt)
        self.update_route_to_neighbor (src, iface)
        if isinstance (pkt, messages.RouteRequest):
            self.recv_request (pkt, src, iface, item.ttl)
        elif isinstance (pkt, messages.RouteReply):
            self.recv_reply (pkt, src, iface, item.ttl)
        elif isinstance (pkt, messages.RouteError):
            self.recv_error (pkt, src)
        elif isinstance (pkt, messages.ReplyAck):
            self.recv_reply_ack (src)

    def update_route_to_neighbor (self, sender, iface):
        art = self.active_route_timeout
        rt = self.table.lookup (sender)
        if rt is None:
            self.table.add (self.table.entry (sender, iface = iface,
                                              next_hop = sender, hop = 1,
                                              lifetime = art))
        elif rt.valid_seqno and rt.hop == 1 and rt.iface is iface:
            rt.extend (art)
        else:
            new = self.table.entry (sender, iface = iface, next_hop = sender,
                                    hop = 1,
                                    lifetime = max (art, rt.lifetime ()))
            self.table.replace (rt, new)

    def recv_request (self, req, src, iface, ttl):
        prev = self.table.lookup (src)
        if prev and prev.is_unidirectional ():
            logging.trace ("Ignoring route request from blacklisted {}", src)
            return
        mine = self.is_my_address (req.dst)
        energy = self.energy ()
        congestion = self.congestion ()
        if not mine and energy < ENERGY_CRITICAL:
            logging.trace ("Energy {:.2f} too low, not relaying request {} "
                           "from {}", energy, req.id, req.origin)
            return
        min_energy, avg_congestion, hop = eocw.accumulate (req.min_energy,
                                                           req.avg_congestion,
                                                           req.hopcount,
                                                           energy, congestion)
        if hop > maxint[1]:
            logging.debug ("Route request {} from {} has hop count {}, "
                           "dropped", req.id, req.origin, hop)
            return
        origin = req.origin
        if self.rreq_cache.is_duplicate (origin, req.id) and not mine:
            logging.trace ("Duplicate route request {} from {}",
                           req.id, origin)
            return
        if mine and (origin, req.id) in self.answered:
            # Already replied along the best path, keep the reverse
            # route on it.
            logging.trace ("Route request {} from {} already answered",
                           req.id, origin)
            return
        # Reverse route to the originator
        lifetime = 2 * self.net_traversal_time \
                   - 2 * hop * self.node_traversal_time
        to_origin = self.table.lookup (origin)
        if to_origin is None:
            to_origin = self.table.entry (origin, iface = iface,
                                          next_hop = src, hop = hop,
                                          seqno = req.origin_seqno,
                                          valid_seqno = True,
                                          lifetime = lifetime)
            self.table.add (to_origin)
        else:
            if not to_origin.valid_seqno or \
               seqnewer (req.origin_seqno, to_origin.seqno) > 0:
                to_origin.seqno = req.origin_seqno
            to_origin.valid_seqno = True
            to_origin.next_hop = src
            to_origin.iface = iface
            to_origin.hop = hop
            to_origin.flag = VALID
            to_origin.extend (lifetime)
        # Route to the neighbor that relayed it
        to_nb = self.table.lookup (src)
        if to_nb is None:
            self.table.add (self.table.entry (src, iface = iface,
                                              next_hop = src, hop = 1,
                                              seqno = req.origin_seqno,
                                              lifetime =
                                              self.active_route_timeout))
        else:
            to_nb.set_lifetime (self.active_route_timeout)
            to_nb.valid_seqno = False
            to_nb.seqno = req.origin_seqno
            to_nb.flag = VALID
            to_nb.iface = iface
            to_nb.hop = 1
            to_nb.next_hop = src
        self.neighbors.update (src, self.allowed_hello_loss * self.hello_interval)
        if mine:
            # Every copy is a candidate path; the reply waits for the
            # collection window to close.
            path = eocw.CandidatePath (min_energy, avg_congestion, hop,
                                       src, iface)
            self.collector.add (origin, req.id, req.dst, path)
            return
        to_dst = self.table.lookup (req.dst)
        if to_dst:
            if to_dst.next_hop == src:
                logging.trace ("Route request {} came from our next hop "
                               "to {}", req.id, req.dst)
                return
            if (req.unknown_seqno or
                seqnewer (to_dst.seqno, req.dst_seqno) >= 0) \
                and to_dst.valid_seqno:
                if not req.dest_only and to_dst.flag == VALID:
                    self.reply_intermediate (to_dst, to_origin,
                                             req.gratuitous)
                    return
                req.dst_seqno = to_dst.seqno
                req.unknown_seqno = 0
        if ttl < 2:
            return
        req.hopcount = hop
        req.min_energy = min_energy
        req.avg_congestion = avg_congestion
        for i in self.interfaces:
            delay = eocw.forward_delay (energy, congestion, self.enable_fuzzy)
            self.last_bcast = self.node.timers.now
            self.send (req, i, i.broadcast, ttl - 1, delay)

    def reply_best (self, c):
        """The candidate collection window for a route request to us
        has closed.  Reply along the best of the paths it came by.
        """
        best, scores, weights = eocw.select_best (c.paths, self.energy (),
                                                  self.congestion (),
                                                  self.enable_fuzzy)
        win = c.paths[best]
        self.answered.add (c.origin, c.rreqid)
        logging.debug ("Request {} from {}: path {} of {} via {} chosen, "
                       "score {:.3f}", c.rreqid, c.origin, best + 1,
                       len (c.paths), win.next_hop, scores[best])
        rrep = messages.RouteReply (hopcount = 0, dst = c.dst,
                                    dst_seqno = self.next_seqno (),
                                    origin = c.origin,
                                    lifetime = self.my_route_timeout,
                                    min_energy = win.min_energy,
                                    avg_congestion = win.avg_congestion)
        # Later copies of the request moved the reverse route to the
        # path they came by; point it back along the winner.
        to_origin = self.table.lookup (c.origin)
        if to_origin:
            to_origin.next_hop = win.next_hop
            to_origin.iface = win.iface
            to_origin.hop = win.hop
            to_origin.min_energy = win.min_energy
            to_origin.avg_congestion = win.avg_congestion
            to_origin.score = scores[best]
        self.send (rrep, win.iface, win.next_hop, win.hop)

    def reply_intermediate (self, to_dst, to_origin, gratuitous):
        """Answer a route request from our own route to the destination.
        """
        rrep = messages.RouteReply (hopcount = to_dst.hop, dst = to_dst.dst,
                                    dst_seqno = to_dst.seqno,
                                    origin = to_origin.dst,
                                    lifetime = max (0, to_dst.lifetime ()),
                                    min_energy = to_dst.min_energy,
                                    avg_congestion = to_dst.avg_congestion)
        if to_dst.hop == 1:
            # Destination is our neighbor, make sure the link toward
            # the originator works both ways.
            rrep.ack_required = 1
            nh = self.table.lookup (to_origin.next_hop)
            if nh:
                nh.stop_ack ()
                nh.ack_timer = self.node.timers.call_later (self.next_hop_wait,
                                                            self.ack_timeout,
                                                            nh.dst)
        to_dst.add_precursor (to_origin.next_hop)
        to_origin.add_precursor (to_dst.next_hop)
        logging.debug ("Replying for {} to {} from route table",
                       to_dst.dst, to_origin.dst)
        self.send (rrep, to_origin.iface, to_origin.next_hop, to_origin.hop)
        if gratuitous:
            grat = messages.RouteReply (hopcount = to_origin.hop,
                                        dst = to_origin.dst,
                                        dst_seqno = to_origin.seqno,
                                        origin = to_dst.dst,
                                        lifetime = max (0, to_origin.lifetime ()),
                                        min_energy = to_origin.min_energy,
                                        avg_congestion = to_origin.avg_congestion)
            self.send (grat, to_dst.iface, to_dst.next_hop, to_dst.hop)

    def ack_timeout (self, neighbor):
        rt = self.table.lookup (neighbor)
        if rt:
            rt.ack_timer = None
        self.table.mark_unidirectional (neighbor, self.blacklist_timeout)

    def send_reply_ack (self, neighbor):
        rt = self.table.lookup (neighbor)
        if rt:
            self.send (messages.ReplyAck (), rt.iface, neighbor, 1)

    def recv_reply (self, rrep, src, iface, ttl):
        hop = min (rrep.hopcount + 1, maxint[1])
        rrep.hopcount = hop
        if rrep.ishello ():
            self.process_hello (rrep, iface)
            return
        dst = rrep.dst
        mine = self.is_my_address (rrep.origin)
        rt = self.table.entry (dst, iface = iface, next_hop = src, hop = hop,
                               seqno = rrep.dst_seqno, valid_seqno = True,
                               lifetime = rrep.lifetime)
        rt.min_energy = rrep.min_energy
        rt.avg_congestion = rrep.avg_congestion
        old = self.table.lookup (dst)
        if old is None:
            self.table.add (rt)
        elif self.table.fresher (rt, old) or (mine and old.flag == IN_SEARCH):
            self.table.replace (old, rt)
        if rrep.ack_required:
            self.send_reply_ack (src)
            rrep.ack_required = 0
        if mine:
            to_dst = self.table.lookup_valid (dst)
            if to_dst:
                logging.debug ("Route to {} found: {}", dst, to_dst)
                d = self.discoveries.get (dst, None)
                if d:
                    d.dispatch (discovery.Resolved (d))
                self.send_from_queue (dst, to_dst.route ())
            return
        to_origin = self.table.lookup (rrep.origin)
        if to_origin is None or to_origin.flag == IN_SEARCH:
            logging.trace ("No reverse route to {} for reply", rrep.origin)
            return
        to_origin.extend (self.active_route_timeout)
        to_dst = self.table.lookup_valid (dst)
        if to_dst:
            to_dst.add_precursor (to_origin.next_hop)
            nh = self.table.lookup (to_dst.next_hop)
            if nh:
                nh.add_precursor (to_origin.next_hop)
            to_origin.add_precursor (to_dst.next_hop)
            nh = self.table.lookup (to_origin.next_hop)
            if nh:
                nh.add_precursor (to_dst.next_hop)
        if ttl < 2:
            return
        self.send (rrep, to_origin.iface, to_origin.next_hop, ttl - 1)

    def recv_reply_ack (self, src):
        rt = self.table.lookup (src)
        if rt:
            rt.stop_ack ()
            rt.flag = VALID

    def process_hello (self, rrep, iface):
        nb = rrep.dst
        lifetime = self.allowed_hello_loss * self.hello_interval
        rt = self.table.lookup (nb)
        if rt is None:
            self.table.add (self.table.entry (nb, iface = iface,
                                              next_hop = nb, hop = 1,
                                              seqno = rrep.dst_seqno,
                                              valid_seqno = True,
                                              lifetime = rrep.lifetime))
        else:
            rt.extend (lifetime)
            rt.seqno = rrep.dst_seqno
            rt.valid_seqno = True
            rt.flag = VALID
            rt.iface = iface
            rt.hop = 1
            rt.next_hop = nb
        if self.enable_hello:
            self.neighbors.update (nb, lifetime)

    # Route maintenance

    def recv_error (self, rerr, src):
        via = self.table.destinations_via (src)
        unreachable = dict ()
        for dst, seqno in rerr.dests:
            if dst in via:
                unreachable[dst] = seqno
        if not unreachable:
            return
        logging.debug ("Route error from {}: {} unreachable", src,
                       ", ".join (str (d) for d in unreachable))
        self.send_rerr_list (messages.RouteError (), unreachable, [ ])
        self.table.invalidate_all (unreachable)

    def link_broken (self, next_hop):
        """The link to neighbor "next_hop" is gone.  Tell the precursors
        of every route that used it, and invalidate those routes.
        """
        rt = self.table.lookup (next_hop)
        if rt is None:
            return
        logging.debug ("Link to {} broken", next_hop)
        precursors = list (rt.precursors)
        rerr = messages.RouteError ()
        rerr.add (next_hop, rt.seqno)
        unreachable = self.table.destinations_via (next_hop)
        self.send_rerr_list (rerr, unreachable, precursors)
        unreachable.setdefault (next_hop, rt.seqno)
        self.table.invalidate_all (unreachable)

    def tx_error (self, addr):
        self.neighbors.tx_error (addr)

    def send_rerr_list (self, rerr, unreachable, precursors):
        """Add the destinations in "unreachable" (dst -> seqno) to
        Route Error "rerr" and send it to the precursors of their
        routes, starting a new message whenever one fills up.
        "precursors" is updated in place.
        """
        for dst, seqno in unreachable.items ():
            if not rerr.add (dst, seqno):
                self.send_rerr_message (rerr, precursors)
                rerr = messages.RouteError ()
                rerr.add (dst, seqno)
            rt = self.table.lookup (dst)
            if rt:
                for p in rt.precursors:
                    if p not in precursors:
                        precursors.append (p)
        if rerr.dests:
            self.send_rerr_message (rerr, precursors)

    def send_rerr_message (self, rerr, precursors):
        """Send a Route Error to the given precursors: unicast if there
        is only one, otherwise broadcast once on each interface that
        has a route to one of them.
        """
        if not precursors or self.rerr_limit.exhausted ():
            return
        if len (precursors) == 1:
            rt = self.table.lookup_valid (precursors[0])
            if rt:
                self.rerr_limit.take ()
                self.send (rerr, rt.iface, precursors[0], 1, jitter ())
            return
        ifaces = [ ]
        for p in precursors:
            rt = self.table.lookup_valid (p)
            if rt and rt.iface not in ifaces:
                ifaces.append (rt.iface)
        if ifaces:
            self.rerr_limit.take ()
        for i in ifaces:
            self.send (rerr, i, i.broadcast, 1, jitter ())

    def send_rerr_no_route (self, dst, seqno, origin):
        if not self.rerr_limit.take ():
            return
        rerr = messages.RouteError ()
        rerr.add (dst, seqno)
        to_origin = self.table.lookup_valid (origin)
        if to_origin:
            self.send (rerr, to_origin.iface, to_origin.next_hop, 1)
        else:
            for i in self.interfaces:
                self.send (rerr, i, i.broadcast, 1)

    # Hello messages

    def hello_expired (self):
        """Send a hello, unless some other broadcast went out since the
        last one, in which case the next hello is due one interval
        after that broadcast.
        """
        offset = 0.0
        if self.last_bcast is not None:
            offset = self.node.timers.now - self.last_bcast
        else:
            self.send_hello ()
        self.node.timers.start (self.hello_timer,
                                max (0.0, self.hello_interval - offset))
        self.last_bcast = None

    def send_hello (self):
        lifetime = self.allowed_hello_loss * self.hello_interval
        for i in self.interfaces:
            hello = messages.RouteReply (hopcount = 0, dst = i.address,
                                         dst_seqno = self.seqno,
                                         origin = i.address,
                                         lifetime = lifetime,
                                         min_energy = self.energy (),
                                         avg_congestion = self.congestion ())
            self.send (hello, i, i.broadcast, 1, jitter ())
