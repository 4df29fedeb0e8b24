import shutil
import tempfile

import pytest

from synthvault.engine import SynthEngine
from synthvault.errors import ZeroAmount
from synthvault.host import ExecutionContext
from synthvault.monitoring import Monitor

ADMIN = b'\xaa' * 20
ALICE = b'\x11' * 20
BOB = b'\x22' * 20


@pytest.fixture
def monitored():
    dir_ = tempfile.mkdtemp()
    monitor = Monitor(serve=False)
    engine = SynthEngine(db_path=dir_, administrator=ADMIN, monitor=monitor)
    engine.credit_native(ALICE, 10 ** 12)
    yield engine, monitor
    engine.close()
    shutil.rmtree(dir_)


def sample(monitor, name, labels=None):
    return monitor.registry.get_sample_value(name, labels or {})


def test_operations_are_counted(monitored):
    engine, monitor = monitored
    engine.update_price(ExecutionContext(ADMIN, 0), 100)
    engine.mint(ExecutionContext(ALICE, 1), 100_000_000)
    with pytest.raises(ZeroAmount):
        engine.mint(ExecutionContext(ALICE, 1), 0)

    assert sample(monitor, 'synth_operations_total', {'op': 'mint', 'status': 'success'}) == 1
    assert sample(monitor, 'synth_operations_total', {'op': 'mint', 'status': 'ZeroAmount'}) == 1
    assert sample(monitor, 'synth_operation_latency_seconds_count', {'op': 'mint'}) == 2


def test_liquidations_are_counted(monitored):
    engine, monitor = monitored
    engine.update_price(ExecutionContext(ADMIN, 0), 100)
    engine.mint(ExecutionContext(ALICE, 1), 100_000_000)
    engine.update_price(ExecutionContext(ADMIN, 2), 130)
    engine.liquidate(ExecutionContext(BOB, 3), ALICE)

    assert sample(monitor, 'synth_liquidations_total') == 1


def test_update_refreshes_gauges(monitored):
    engine, monitor = monitored
    engine.update_price(ExecutionContext(ADMIN, 5), 100)
    engine.mint(ExecutionContext(ALICE, 6), 100_000_000)
    monitor.update()

    assert sample(monitor, 'synth_total_supply') == 100_000_000
    assert sample(monitor, 'synth_escrow_collateral') == 150_000_000
    assert sample(monitor, 'synth_oracle_price') == 100
    assert sample(monitor, 'synth_oracle_last_update_height') == 5
    assert sample(monitor, 'synth_vaults') == 1
    assert sample(monitor, 'process_memory_rss_bytes') > 0
