import signal
import threading
import time
import unittest
from datetime import timedelta

from clickhouse_monitor.executors.sampler import Sampler
from clickhouse_monitor.executors.shutdown_coordinator import ShutdownCoordinator
from clickhouse_monitor.utils.chart_renderer import ChartRenderer
from clickhouse_monitor.utils.clickhouse_utils import QuerySample
from clickhouse_monitor.utils.errors import EmptyLogError
from clickhouse_monitor.utils.measurement_log import MeasurementLog
from clickhouse_monitor.utils.output_sink import MemorySink


class CountingSource:
    def __init__(self):
        self.calls = 0

    def query_sample(self):
        self.calls += 1
        return QuerySample(value=self.calls, elapsed=timedelta(milliseconds=1))


class TestTerminationRequests(unittest.TestCase):
    def test_first_request_wins(self):
        c = ShutdownCoordinator()
        self.assertTrue(c.request_termination("operator"))
        self.assertFalse(c.request_termination("again"))
        self.assertEqual(c.reason, "operator")
        self.assertTrue(c.termination_requested)

    def test_wait_times_out_without_request(self):
        c = ShutdownCoordinator()
        self.assertFalse(c.wait_for_termination_request(timeout=0.02))

    def test_wait_returns_when_requested_from_other_thread(self):
        c = ShutdownCoordinator()
        timer = threading.Timer(0.05, c.request_termination, args=("timer",))
        timer.start()
        try:
            self.assertTrue(c.wait_for_termination_request())
        finally:
            timer.cancel()
        self.assertEqual(c.reason, "timer")

    @unittest.skipUnless(hasattr(signal, "SIGUSR1"), "POSIX signals only")
    def test_os_signal_triggers_termination(self):
        previous = signal.getsignal(signal.SIGUSR1)
        with ShutdownCoordinator(signals=(signal.SIGUSR1,)) as c:
            signal.raise_signal(signal.SIGUSR1)
            self.assertTrue(c.wait_for_termination_request(timeout=2))
            self.assertEqual(c.reason, "SIGUSR1")
            # A second signal is ignored
            signal.raise_signal(signal.SIGUSR1)
            self.assertEqual(c.reason, "SIGUSR1")
        self.assertEqual(signal.getsignal(signal.SIGUSR1), previous)


class TestShutdown(unittest.TestCase):
    def test_shutdown_freezes_log_after_handshake(self):
        source = CountingSource()
        log = MeasurementLog()
        sampler = Sampler(source, log, period=0.001)
        sampler.start()
        time.sleep(0.02)
        c = ShutdownCoordinator()
        c.request_termination()
        measurements = c.shutdown(sampler, log)

        self.assertTrue(sampler.token.acknowledged)
        self.assertFalse(sampler.running)
        self.assertTrue(log.frozen)
        self.assertEqual(len(measurements), source.calls)
        time.sleep(0.01)
        self.assertEqual(len(log), len(measurements))

    def test_termination_before_first_tick_renders_nothing(self):
        log = MeasurementLog()
        sampler = Sampler(CountingSource(), log, period=0.3)
        sampler.token.request_stop()
        sampler.start()
        measurements = ShutdownCoordinator().shutdown(sampler, log)
        self.assertEqual(measurements, ())

        sink = MemorySink()
        with self.assertRaises(EmptyLogError):
            sink.write(ChartRenderer().render(measurements).data)
        self.assertEqual(sink.payloads, [])


if __name__ == "__main__":
    unittest.main()
