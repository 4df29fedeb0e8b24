"""
Prometheus metrics for the engine.
"""
import time
import psutil
import socket
from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry
from prometheus_client.exposition import make_wsgi_app
from wsgiref.simple_server import make_server, WSGIServer
from socketserver import ThreadingMixIn
import threading
import logging

logger = logging.getLogger(__name__)


class ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    """A WSGI server that serves scrapes off the main thread."""
    allow_reuse_address = True
    daemon_threads = True


class Monitor:
    def __init__(self, engine=None, host="127.0.0.1", port=9090, serve=False):
        self.engine = engine
        self.host = host
        self.port = port
        self.server = None
        self.thread = None
        self.process = psutil.Process()

        # Isolated registry so several engines can live in one process
        self.registry = CollectorRegistry()

        self.op_counter = Counter('synth_operations_total', 'Operations processed', ['op', 'status'], registry=self.registry)
        self.op_latency = Histogram('synth_operation_latency_seconds', 'Time to process an operation', ['op'], registry=self.registry)
        self.total_supply = Gauge('synth_total_supply', 'Synthetic token total supply (base units)', registry=self.registry)
        self.escrow_balance = Gauge('synth_escrow_collateral', 'Native currency held in escrow', registry=self.registry)
        self.oracle_price = Gauge('synth_oracle_price', 'Current oracle price (scaled by 100)', registry=self.registry)
        self.oracle_age = Gauge('synth_oracle_last_update_height', 'Height of the last price update', registry=self.registry)
        self.vault_count = Gauge('synth_vaults', 'Number of vaults', registry=self.registry)
        self.liquidations = Counter('synth_liquidations_total', 'Vaults liquidated', registry=self.registry)
        self.cpu_usage = Gauge('process_cpu_percent', 'Process CPU usage percent', registry=self.registry)
        self.memory_rss = Gauge('process_memory_rss_bytes', 'Process resident memory', registry=self.registry)

        if serve:
            self.start_server()

    def bind(self, engine):
        self.engine = engine

    def start_server(self, max_retries: int = 5, retry_delay: float = 2):
        """Starts the Prometheus HTTP exporter, retrying while the port is busy."""
        app = make_wsgi_app(self.registry)

        for attempt in range(max_retries):
            try:
                self.server = make_server(self.host, self.port, app, ThreadingWSGIServer)
                self.server.socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

                self.thread = threading.Thread(target=self.server.serve_forever)
                self.thread.daemon = True
                self.thread.start()
                logger.info(f"Prometheus server started on http://{self.host}:{self.port}")
                return
            except OSError as e:
                if e.errno == 98 and attempt < max_retries - 1:  # Address already in use
                    logger.warning(f"Port {self.port} in use, retrying in {retry_delay}s (attempt {attempt+1}/{max_retries})...")
                    time.sleep(retry_delay)
                else:
                    logger.error(f"Failed to bind to port {self.port}: {e}")
                    raise

    def stop_server(self):
        if self.server:
            self.server.shutdown()
            self.server.server_close()
            self.server = None
            logger.info("Prometheus server stopped.")

    def update(self):
        """Refresh state gauges from the engine."""
        if self.engine is not None:
            stats = self.engine.get_stats()
            self.total_supply.set(stats['total_supply'])
            self.escrow_balance.set(stats['escrow_balance'])
            self.oracle_price.set(stats['oracle_price'])
            self.oracle_age.set(stats['oracle_last_update_height'])
            self.vault_count.set(stats['vault_count'])

        self.cpu_usage.set(self.process.cpu_percent())
        self.memory_rss.set(self.process.memory_info().rss)

    def record_op(self, op: str, status: str, latency: float):
        self.op_counter.labels(op=op, status=status).inc()
        self.op_latency.labels(op=op).observe(latency)
        if op == 'liquidate' and status == 'success':
            self.liquidations.inc()
