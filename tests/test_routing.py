#!/usr/bin/env python3

from tests.aodvtest import *

from aodv.table import VALID, INVALID

class routingtest (AodvTest):
    def send (self, n, dst, ident = 1):
        """Send a datagram from node n to dst.  Returns the datagram
        and the route_output status.
        """
        pkt = self.datagram (n.interfaces[0].address, dst, ident)
        ucb = self.medium.ucb (n)
        rc = n.route_output (pkt, ucb, self.medium.ecb (n))
        if rc:
            ucb (rc, pkt)
        return pkt, rc

    def delivered_to (self, n):
        return [ pkt for dn, pkt in self.medium.delivered if dn is n ]

    def replies (self, n):
        return [ messages.RouteReply (data)
                 for data, dest, ttl in self.medium.sent_by (n, RREP) ]

class test_chain (routingtest):
    def setUp (self):
        super ().setUp ()
        self.a, self.b, self.c = self.chain (3)

    def discover (self):
        pkt, rc = self.send (self.a, addr (3))
        self.assertIs (rc, DEFERRED)
        self.advance (1.0)
        return pkt

    def test_discovery (self):
        pkt = self.discover ()
        rt = self.a.routing.table.lookup_valid (addr (3))
        self.assertIsNotNone (rt)
        self.assertEqual (rt.next_hop, addr (2))
        self.assertEqual (rt.hop, 2)
        self.assertEqual (rt.seqno, 1)
        self.assertNotIn (addr (3), self.a.routing.discoveries)
        # Reverse route at the destination, and the relay's routes
        rt = self.c.routing.table.lookup_valid (addr (1))
        self.assertEqual (rt.next_hop, addr (2))
        self.assertEqual (rt.hop, 2)
        rt = self.b.routing.table.lookup_valid (addr (3))
        self.assertEqual (rt.hop, 1)
        self.assertIn (addr (1), rt.precursors)
        # The queued packet made it
        got = self.delivered_to (self.c)
        self.assertEqual (len (got), 1)
        self.assertEqual (got[0].payload, b"hello")
        self.assertEqual (got[0].source, addr (1))
        self.assertEqual (got[0].ttl, 63)
        self.assertEqual (self.medium.errors, [ ])

    def test_route_output (self):
        self.discover ()
        pkt, rc = self.send (self.a, addr (3), 2)
        self.assertIsInstance (rc, Route)
        self.assertEqual (rc.gateway, addr (2))
        self.assertEqual (rc.source, addr (1))
        self.advance (0.1)
        self.assertEqual (len (self.delivered_to (self.c)), 2)

    def test_reply_metrics (self):
        self.discover ()
        rrep = self.replies (self.c)[0]
        self.assertEqual (rrep.dst, addr (3))
        self.assertEqual (rrep.origin, addr (1))
        self.assertAlmostEqual (rrep.lifetime, 11.2)
        self.assertEqual (rrep.min_energy, 1.0)
        self.assertEqual (rrep.avg_congestion, 1.0)
        self.assertDebug ("chosen")

    def test_link_break (self):
        self.discover ()
        self.medium.cut (addr (2), addr (3))
        pkt, rc = self.send (self.a, addr (3), 2)
        self.assertTrue (rc)
        self.advance (0.1)
        self.assertEqual (len (self.delivered_to (self.c)), 1)
        rerrs = self.medium.sent_by (self.b, RERR)
        self.assertEqual (len (rerrs), 1)
        data, dest, ttl = rerrs[0]
        self.assertEqual (dest, addr (1))
        rerr = messages.RouteError (data)
        self.assertEqual (rerr.dests, [ (addr (3), 1) ])
        self.assertEqual (self.b.routing.table.lookup (addr (3)).flag,
                          INVALID)
        rt = self.a.routing.table.lookup (addr (3))
        self.assertEqual (rt.flag, INVALID)
        self.assertEqual (rt.seqno, 1)
        self.assertIsNone (self.a.routing.table.lookup_valid (addr (3)))
        # A does not pass it on, nobody uses it as a relay
        self.assertEqual (self.medium.sent_by (self.a, RERR), [ ])

    def test_rediscover (self):
        self.discover ()
        self.medium.cut (addr (2), addr (3))
        self.send (self.a, addr (3), 2)
        self.advance (0.1)
        self.medium.connect (addr (2), addr (3))
        pkt, rc = self.send (self.a, addr (3), 3)
        self.assertIs (rc, DEFERRED)
        self.advance (1.0)
        reqs = [ messages.RouteRequest (data) for data, dest, ttl
                 in self.medium.sent_by (self.a, RREQ) ]
        # The new search starts from the known hop count and asks for
        # something fresher than the route that broke.
        self.assertEqual (reqs[-1].unknown_seqno, 0)
        self.assertEqual (reqs[-1].dst_seqno, 1)
        rt = self.a.routing.table.lookup_valid (addr (3))
        self.assertIsNotNone (rt)
        self.assertEqual (rt.seqno, 2)
        self.assertEqual (len (self.delivered_to (self.c)), 2)

class test_hello (routingtest):
    def test_neighbor_loss (self):
        a, b = self.chain (2, "--enable-hello")
        self.advance (3.0)
        self.assertIn (addr (2), a.routing.neighbors)
        rt = a.routing.table.lookup_valid (addr (2))
        self.assertIsNotNone (rt)
        self.assertEqual (rt.hop, 1)
        hellos = [ r for r in self.replies (a) if r.ishello () ]
        self.assertGreaterEqual (len (hellos), 2)
        self.medium.cut (addr (1), addr (2))
        self.advance (4.0)
        self.assertNotIn (addr (2), a.routing.neighbors)
        self.assertEqual (a.routing.table.lookup (addr (2)).flag, INVALID)
        self.assertDebug ("Neighbor .* timed out")

    def test_no_hello (self):
        a, b = self.chain (2)
        self.advance (3.0)
        self.assertEqual (self.medium.sent, [ ])

class intermediatetest (routingtest):
    def setUp (self):
        super ().setUp ()
        self.a, self.b, self.c = self.chain (3, self.options)
        # B learns about its neighbor C first
        self.send (self.b, addr (3))
        self.advance (1.0)
        rt = self.b.routing.table.lookup_valid (addr (3))
        self.assertEqual (rt.hop, 1)
        self.assertTrue (rt.valid_seqno)

    options = ""

class test_gratuitous (intermediatetest):
    def test_reply (self):
        self.send (self.a, addr (3))
        self.advance (0.5)
        reps = [ r for r in self.replies (self.b) if r.origin == addr (1) ]
        self.assertEqual (len (reps), 1)
        self.assertEqual (reps[0].ack_required, 1)
        rt = self.a.routing.table.lookup_valid (addr (3))
        self.assertEqual (rt.next_hop, addr (2))
        self.assertEqual (rt.hop, 2)
        # Gratuitous reply gave the destination a route back
        rt = self.c.routing.table.lookup_valid (addr (1))
        self.assertIsNotNone (rt)
        self.assertEqual (rt.next_hop, addr (2))
        self.assertEqual (rt.hop, 2)
        # Acknowledged, so the link is fine
        self.assertFalse (self.b.routing.table.lookup (addr (1)).is_unidirectional ())
        self.assertEqual (len (self.delivered_to (self.c)), 2)

    def test_unidirectional (self):
        self.medium.drop = lambda src, dst, data: data[0] == RREP_ACK
        self.send (self.a, addr (3))
        self.advance (0.5)
        self.assertIsNotNone (self.a.routing.table.lookup_valid (addr (3)))
        self.assertTrue (self.b.routing.table.lookup (addr (1)).is_unidirectional ())
        self.assertDebug ("unidirectional")
        # Route requests from A are now ignored by B
        self.send (self.a, addr (9))
        self.advance (0.1)
        self.assertTrace ("blacklisted")
        self.assertEqual (self.medium.sent_by (self.b, RREQ)[1:], [ ])

class test_no_gratuitous (intermediatetest):
    options = "--no-gratuitous-reply"

    def test_reply (self):
        self.send (self.a, addr (3))
        self.advance (0.5)
        self.assertIsNotNone (self.a.routing.table.lookup_valid (addr (3)))
        self.assertEqual (len (self.medium.sent_by (self.b, RREP)), 1)
        # No gratuitous reply, so C has no route back to A
        self.assertIsNone (self.c.routing.table.lookup (addr (1)))
        self.assertEqual (len (self.delivered_to (self.c)), 2)

class test_destination_only (intermediatetest):
    options = "--destination-only"

    def test_reply (self):
        self.send (self.a, addr (3))
        self.advance (1.0)
        self.assertIsNotNone (self.a.routing.table.lookup_valid (addr (3)))
        self.assertFalse (any (r.ack_required for r in self.replies (self.b)))
        self.assertEqual (len (self.replies (self.c)), 2)
        self.assertEqual (len (self.delivered_to (self.c)), 2)

class test_diamond (routingtest):
    """A reaches C through either B or D; D's battery is low.
    """
    def setUp (self):
        super ().setUp ()
        self.a = self.mknode (1, "--no-fuzzy")
        self.b = self.mknode (2, "--no-fuzzy")
        self.c = self.mknode (3, "--no-fuzzy")
        self.d = self.mknode (4, "--no-fuzzy",
                              energy = providers.FixedEnergy (0.3))
        for x, y in ((1, 2), (1, 4), (2, 3), (4, 3)):
            self.medium.connect (addr (x), addr (y))

    def test_select (self):
        self.send (self.a, addr (3))
        self.advance (1.0)
        args = self.assertDebug (r"path \{\} of \{\} via \{\} chosen")
        self.assertEqual (args[4], 2)
        self.assertEqual (args[5], addr (2))
        rt = self.c.routing.table.lookup_valid (addr (1))
        self.assertEqual (rt.next_hop, addr (2))
        self.assertAlmostEqual (rt.score, 1.0)
        self.assertEqual (rt.min_energy, 1.0)
        rt = self.a.routing.table.lookup_valid (addr (3))
        self.assertEqual (rt.next_hop, addr (2))
        self.assertEqual (rt.hop, 2)
        self.assertEqual (self.replies (self.d), [ ])
        self.assertEqual (len (self.delivered_to (self.c)), 1)

class test_late_copy (routingtest):
    """Diamond again, with fuzzy weighting.  D holds the request long
    enough that its copy reaches C after the collection window closed.
    """
    def setUp (self):
        super ().setUp ()
        self.a = self.mknode (1)
        self.b = self.mknode (2)
        self.c = self.mknode (3)
        self.d = self.mknode (4, energy = providers.FixedEnergy (0.4))
        for x, y in ((1, 2), (1, 4), (2, 3), (4, 3)):
            self.medium.connect (addr (x), addr (y))

    def test_one_reply (self):
        self.send (self.a, addr (3))
        self.advance (1.0)
        reps = [ r for r in self.replies (self.c) if r.origin == addr (1) ]
        self.assertEqual (len (reps), 1)
        self.assertTrace ("already answered")
        rt = self.c.routing.table.lookup_valid (addr (1))
        self.assertEqual (rt.next_hop, addr (2))
        rt = self.a.routing.table.lookup_valid (addr (3))
        self.assertEqual (rt.next_hop, addr (2))
        self.assertEqual (len (self.delivered_to (self.c)), 1)

class test_crossing (routingtest):
    """A and B look for each other at the same time, but A's requests
    are lost.  B's request gives A its route.
    """
    def test_crossing (self):
        a, b = self.chain (2)
        self.medium.drop = lambda src, dst, data: \
                           src == addr (1) and data[0] == RREQ
        pa, rc = self.send (a, addr (2))
        self.assertIs (rc, DEFERRED)
        pb, rc = self.send (b, addr (1))
        self.assertIs (rc, DEFERRED)
        self.advance (2.0)
        self.assertEqual ([ p.source for p in self.delivered_to (a) ],
                          [ addr (2) ])
        self.assertEqual ([ p.source for p in self.delivered_to (b) ],
                          [ addr (1) ])
        self.assertEqual (self.medium.errors, [ ])
        self.assertNotIn (addr (2), a.routing.discoveries)
        self.assertEqual (len (self.medium.sent_by (a, RREQ)), 1)

class test_low_energy (routingtest):
    def setUp (self):
        super ().setUp ()
        self.n = self.mknode (1, energy = providers.FixedEnergy (0.1))
        self.iface = self.n.interfaces[0]

    def rreq (self, dst, origin, rid, hop = 0):
        return messages.RouteRequest (gratuitous = 1, unknown_seqno = 1,
                                      hopcount = hop, id = rid, dst = dst,
                                      origin = origin, origin_seqno = rid,
                                      min_energy = 1.0,
                                      avg_congestion = 1.0).encode ()

    def test_no_relay (self):
        for i in range (1000):
            origin = Ipaddr (0x0a010000 + random.randrange (65536))
            dst = Ipaddr (0x0a030000 + random.randrange (65536))
            src = Ipaddr (0x0a020000 + random.randrange (65536))
            data = self.rreq (dst, origin, random.randrange (1 << 32),
                              random.randrange (20))
            self.n.receive (data, src, self.iface, random.randrange (2, 65))
        self.advance (1.0)
        self.assertEqual (self.medium.sent, [ ])
        self.assertTrace ("too low")

    def test_destination (self):
        # Low energy does not stop a node answering for itself
        self.n.receive (self.rreq (addr (1), addr (7), 5), addr (7),
                        self.iface, 10)
        self.advance (0.1)
        reps = self.replies (self.n)
        self.assertEqual (len (reps), 1)
        self.assertEqual (reps[0].origin, addr (7))
        self.assertAlmostEqual (reps[0].min_energy, 0.1)

class test_input (routingtest):
    def setUp (self):
        super ().setUp ()
        self.n = self.mknode (1)
        self.iface = self.n.interfaces[0]
        self.ucb = unittest.mock.Mock ()
        self.lcb = unittest.mock.Mock ()
        self.ecb = unittest.mock.Mock ()

    def input (self, src, dst, ident = 1):
        pkt = self.datagram (src, dst, ident)
        return pkt, self.n.route_input (pkt, self.iface, self.ucb,
                                        self.lcb, self.ecb)

    def test_own (self):
        pkt, rc = self.input (addr (1), addr (5))
        self.assertIs (rc, DROPPED)
        self.assertEqual (self.lcb.call_count, 0)

    def test_multicast (self):
        pkt, rc = self.input (addr (5), "224.0.0.5")
        self.assertIs (rc, NOT_MINE)

    def test_local (self):
        pkt, rc = self.input (addr (5), addr (1))
        self.assertIs (rc, DELIVERED)
        self.lcb.assert_called_once_with (pkt, self.iface)

    def test_broadcast (self):
        pkt, rc = self.input (addr (5), BROADCAST, 9)
        self.assertIs (rc, DELIVERED)
        self.lcb.assert_called_once_with (pkt, self.iface)
        # Rebroadcast
        self.assertEqual (self.ucb.call_count, 1)
        route = self.ucb.call_args[0][0]
        self.assertEqual (route.gateway, BROADCAST)
        pkt, rc = self.input (addr (5), BROADCAST, 9)
        self.assertIs (rc, DROPPED)
        self.assertEqual (self.lcb.call_count, 1)

    def test_no_route (self):
        pkt, rc = self.input (addr (5), addr (8))
        self.assertIs (rc, DROPPED)
        self.ecb.assert_called_once_with (pkt, NO_ROUTE)
        self.assertEqual (len (self.medium.sent_by (self.n, RERR)), 1)
        rerr, dest, ttl = self.lastsent (self.n, RERR)
        self.assertEqual (dest, BROADCAST)
        self.assertEqual (ttl, 1)
        self.assertEqual (rerr.dests, [ (addr (8), 0) ])

    def test_rerr_limit (self):
        for i in range (15):
            self.input (addr (5), addr (30 + i))
        self.assertEqual (len (self.medium.sent_by (self.n, RERR)), 10)
        self.assertEqual (self.ecb.call_count, 15)
        self.advance (1.0)
        self.input (addr (5), addr (50))
        self.assertEqual (len (self.medium.sent_by (self.n, RERR)), 11)

    def test_bad_message (self):
        self.n.receive (b"\x09\x01\x02", addr (5), self.iface, 1)
        self.n.receive (b"\x01\x00", addr (5), self.iface, 1)
        self.advance (0.1)
        self.assertDebug ("Invalid AODV message")
        self.assertEqual (self.medium.sent, [ ])

    def test_long_path (self):
        req = messages.RouteRequest (hopcount = 255, id = 4, dst = addr (9),
                                     origin = addr (7), origin_seqno = 3,
                                     min_energy = 1.0, avg_congestion = 1.0)
        self.n.receive (req.encode (), addr (5), self.iface, 10)
        self.advance (0.1)
        self.assertDebug ("has hop count")
        self.assertEqual (self.medium.sent_by (self.n, RREQ), [ ])
        self.assertIsNone (self.n.routing.table.lookup (addr (7)))
        # One hop less still fits
        req.hopcount = 254
        req.id = 5
        self.n.receive (req.encode (), addr (5), self.iface, 10)
        self.advance (0.1)
        fwd, dest, ttl = self.lastsent (self.n, RREQ)
        self.assertEqual (fwd.hopcount, 255)
        self.assertEqual (ttl, 9)

class test_interfaces (routingtest):
    def test_down (self):
        a, b = self.chain (2)
        self.send (a, addr (2))
        self.advance (1.0)
        self.assertIsNotNone (a.routing.table.lookup_valid (addr (2)))
        a.interface_down ("eth-0")
        self.assertEqual (len (a.routing.table), 0)
        pkt, rc = self.send (a, addr (2), 2)
        self.assertIs (rc, NO_ROUTE)
        a.interface_up ("eth-0")
        self.assertIn (BROADCAST, a.routing.table)
        pkt, rc = self.send (a, addr (2), 3)
        self.assertIs (rc, DEFERRED)

    def test_address (self):
        r = self.mknode (1).routing
        wlan = Interface ("wlan-0", "10.1.0.1", "10.1.255.255")
        r.address_added (wlan)
        self.assertEqual (len (r.interfaces), 2)
        self.assertTrue (r.is_my_address (Ipaddr ("10.1.0.1")))
        self.assertIn (Ipaddr ("10.1.255.255"), r.table)
        # Second address on the same interface is ignored
        r.address_added (Interface ("wlan-0", "10.1.0.2"))
        self.assertEqual (len (r.interfaces), 2)
        self.assertFalse (r.is_my_address (Ipaddr ("10.1.0.2")))
        r.address_removed (Ipaddr ("10.1.0.1"))
        self.assertEqual (len (r.interfaces), 1)
        self.assertNotIn (Ipaddr ("10.1.255.255"), r.table)
        self.assertIn (BROADCAST, r.table)
        r.address_removed (Ipaddr ("10.9.9.9"))
        self.assertEqual (len (r.interfaces), 1)

    def test_unknown (self):
        a = self.mknode (1)
        with self.assertRaises (ConfigError):
            a.interface_down ("eth-9")

if __name__ == "__main__":
    unittest.main ()
