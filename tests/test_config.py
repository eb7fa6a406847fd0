#!/usr/bin/env python3

import io

from tests.aodvtest import *

class test_defaults (AodvTest):
    def test_empty (self):
        c = config.Config ()
        self.assertEqual (c.interface, { })
        p = c.routing
        self.assertEqual (p.rreq_retries, 2)
        self.assertEqual (p.ttl_start, 1)
        self.assertEqual (p.ttl_increment, 2)
        self.assertEqual (p.ttl_threshold, 7)
        self.assertEqual (p.net_diameter, 35)
        self.assertEqual (p.rreq_rate_limit, 10)
        self.assertEqual (p.rerr_rate_limit, 10)
        self.assertEqual (p.max_queue_len, 64)
        self.assertFalse (p.enable_hello)
        self.assertTrue (p.enable_broadcast)
        self.assertTrue (p.enable_fuzzy)
        self.assertTrue (p.gratuitous_reply)
        self.assertFalse (p.destination_only)
        self.assertEqual (c.node.energy, 1.0)
        self.assertEqual (c.logging.log_level, "INFO")

    def test_derived (self):
        p = config.Config ().routing
        self.assertAlmostEqual (p.net_traversal_time, 2.8)
        self.assertAlmostEqual (p.path_discovery_time, 5.6)
        self.assertAlmostEqual (p.my_route_timeout, 11.2)
        self.assertAlmostEqual (p.blacklist_timeout, 5.6)
        self.assertAlmostEqual (p.delete_period, 15.0)
        self.assertAlmostEqual (p.next_hop_wait, 0.05)

    def test_derived_hello (self):
        p = config.Config ("routing --hello-interval 4 "
                           "--active-route-timeout 2").routing
        self.assertAlmostEqual (p.delete_period, 20.0)
        self.assertAlmostEqual (p.my_route_timeout, 11.2)

    def test_explicit (self):
        p = config.Config ("routing --net-traversal-time 1 "
                           "--delete-period 3\n").routing
        self.assertEqual (p.net_traversal_time, 1.0)
        self.assertEqual (p.path_discovery_time, 2.0)
        self.assertEqual (p.delete_period, 3.0)

class test_file (AodvTest):
    def test_parse (self):
        f = io.StringIO ("# Test node\n"
                         "\n"
                         "interface eth-0 --address 10.0.0.1\n"
                         "interface wlan-0 --address 192.168.1.7 "
                         "--broadcast 192.168.1.255\n"
                         "node --energy 0.4 --queue-capacity 50\n"
                         "routing --enable-hello --no-fuzzy --ttl-start 2\n")
        c = config.Config (f)
        self.assertEqual (set (c.interface), { "eth-0", "wlan-0" })
        w = c.interface["wlan-0"]
        self.assertEqual (w.address, Ipaddr ("192.168.1.7"))
        self.assertEqual (w.broadcast, Ipaddr ("192.168.1.255"))
        self.assertEqual (c.interface["eth-0"].broadcast, BROADCAST)
        self.assertEqual (c.node.energy, 0.4)
        self.assertEqual (c.node.queue_capacity, 50)
        self.assertTrue (c.routing.enable_hello)
        self.assertFalse (c.routing.enable_fuzzy)
        self.assertEqual (c.routing.ttl_start, 2)

    def test_node (self):
        c = config.Config ("interface eth-0 --address 10.0.0.1\n"
                           "interface eth-1 --address 10.0.1.1\n"
                           "node --energy 0.4 --queue-capacity 4\n")
        n = node.Node (c, self.timers, self.medium)
        self.assertEqual (str (n), "10.0.0.1")
        self.assertEqual (len (n.interfaces), 2)
        self.assertEqual (n.routing.energy (), 0.4)
        self.assertEqual (n.routing.congestion (), 1.0)
        n.start ()
        self.assertTrue (n.routing.is_my_address (Ipaddr ("10.0.1.1")))
        n.stop ()

class test_errors (AodvTest):
    def test_threshold (self):
        with self.assertRaises (ConfigError):
            config.Config ("routing --ttl-start 5 --ttl-threshold 3")
        with self.assertRaises (ConfigError):
            config.Config ("routing --net-diameter 5")

    def test_bad_values (self):
        with unittest.mock.patch ("sys.stderr", io.StringIO ()):
            with self.assertRaises (SystemExit):
                config.Config ("interface eth-0 --address 10.0.0.300")
            with self.assertRaises (SystemExit):
                config.Config ("node --energy 1.5")
            with self.assertRaises (SystemExit):
                config.Config ("routing --ttl-start 0")
            with self.assertRaises (SystemExit):
                config.Config ("bogus")

class test_providers (AodvTest):
    def test_battery (self):
        b = providers.Battery (100.0)
        self.assertEqual (b.energy (), 1.0)
        b.consume (30)
        self.assertAlmostEqual (b.energy (), 0.7)
        b.consume (100)
        self.assertEqual (b.energy (), 0.0)
        self.assertEqual (providers.Battery ().energy (), 1.0)

    def test_queue (self):
        q = [ ]
        c = providers.QueueCongestion (4, lambda: len (q))
        self.assertEqual (c.congestion (), 1.0)
        q.extend ((1, 2, 3))
        self.assertEqual (c.congestion (), 0.25)
        q.extend ((4, 5))
        self.assertEqual (c.congestion (), 0.0)

if __name__ == "__main__":
    unittest.main ()
