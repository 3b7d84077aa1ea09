"""Unit tests for the reconciliation Task base class.

Tests cover:
- Disabled tasks doing nothing
- Apply order and optional assets
- Retirement order and residual deletion
- Fail-fast error reporting with step and identity
- Cancellation and idempotent re-runs
"""

import pytest

from clustermon.core.context import Context
from clustermon.core.errors import (
    CancellationError,
    ConfigurationError,
    ReconciliationError,
)
from clustermon.core.schema import (
    ABSENT,
    Asset,
    ComponentResources,
    ObjectIdentity,
    Present,
    ResourceKind,
)
from clustermon.core.tasks import Task
from clustermon.k8s.recording import ABSENT as RESULT_ABSENT
from clustermon.k8s.recording import (
    APPLY,
    CREATED,
    DELETE,
    DELETED,
    UNCHANGED,
    RecordingClient,
)

NAMESPACE = "ns"

# ============================================================================
# Test Fixtures and Mock Implementations
# ============================================================================

WEB_SA = Asset("web", ResourceKind.SERVICE_ACCOUNT, "sa.yaml")
WEB_SERVICE = Asset("web", ResourceKind.SERVICE, "service.yaml")
WEB_DEPLOYMENT = Asset("web", ResourceKind.DEPLOYMENT, "deployment.yaml")
WEB_PDB = Asset("web", ResourceKind.POD_DISRUPTION_BUDGET, "pdb.yaml", optional=True)

OLD_SERVICE = Asset("old", ResourceKind.SERVICE, "service.yaml")
OLD_MONITOR = Asset("old", ResourceKind.SERVICE_MONITOR, "sm.yaml")

WEB = ComponentResources(
    component="web",
    apply_order=(WEB_SA, WEB_SERVICE, WEB_DEPLOYMENT, WEB_PDB),
)
OLD = ComponentResources(
    component="old",
    apply_order=(),
    retire_order=(OLD_MONITOR, OLD_SERVICE),
    residuals=((ResourceKind.DEPLOYMENT, "old"),),
)


def identity_of(asset, name=None):
    return ObjectIdentity(asset.kind, name or asset.component, NAMESPACE)


class StubFactory:
    """Factory producing bare identities, with overridable products."""

    def __init__(self, overrides=None):
        self.overrides = dict(overrides or {})
        self.produced = []

    def produce(self, asset):
        self.produced.append(asset)
        if asset in self.overrides:
            product = self.overrides[asset]
            if isinstance(product, Exception):
                raise product
            return product
        return Present(identity_of(asset))


class WebTask(Task):
    name = "web"
    resources = WEB
    retires = (OLD,)


def make_task(client=None, factory=None, enabled=True, ctx=None):
    return WebTask(
        ctx or Context.background(),
        NAMESPACE,
        client if client is not None else RecordingClient(),
        enabled,
        factory or StubFactory(),
    )


def apply_order():
    return [identity_of(WEB_SA), identity_of(WEB_SERVICE), identity_of(WEB_DEPLOYMENT)]


def delete_order():
    return [
        identity_of(OLD_MONITOR),
        identity_of(OLD_SERVICE),
        ObjectIdentity(ResourceKind.DEPLOYMENT, "old", NAMESPACE),
    ]


# ============================================================================
# Tests
# ============================================================================


class TestDisabledTask:
    """Tests for disabled tasks."""

    def test_disabled_task_makes_no_calls(self):
        """Test that a disabled task neither produces nor calls the client."""
        client = RecordingClient()
        factory = StubFactory()
        make_task(client, factory, enabled=False).run()
        assert client.calls == []
        assert factory.produced == []

    def test_disabled_task_ignores_cancelled_context(self):
        ctx = Context.background()
        ctx.cancel()
        make_task(enabled=False).run(ctx)


class TestApplySequence:
    """Tests for the create-or-update sequence."""

    def test_full_success_order(self):
        """Test that applies follow the declared order, then deletes."""
        client = RecordingClient()
        make_task(client).run()
        assert client.identities(APPLY) == apply_order() + [identity_of(WEB_PDB)]
        assert client.identities(DELETE) == delete_order()
        assert [c.action for c in client.calls] == [APPLY] * 4 + [DELETE] * 3

    def test_optional_absent_asset_is_skipped(self):
        client = RecordingClient()
        make_task(client, StubFactory({WEB_PDB: ABSENT})).run()
        assert client.identities(APPLY) == apply_order()

    def test_required_absent_asset_fails(self):
        """Test that a required asset the factory omits is a configuration error."""
        client = RecordingClient()
        task = make_task(client, StubFactory({WEB_SERVICE: ABSENT}))
        with pytest.raises(ConfigurationError, match="initializing web Service failed") as exc:
            task.run()
        assert exc.value.step == "initializing"
        assert exc.value.identity == WEB_SERVICE
        assert client.identities() == [identity_of(WEB_SA)]

    def test_factory_error_wrapped_as_configuration_error(self):
        client = RecordingClient()
        factory = StubFactory({WEB_DEPLOYMENT: ValueError("image must be a string")})
        task = make_task(client, factory)
        with pytest.raises(ConfigurationError, match="initializing web Deployment failed"):
            task.run()
        assert client.identities() == [identity_of(WEB_SA), identity_of(WEB_SERVICE)]
        assert client.identities(DELETE) == []

    def test_kind_mismatch_is_a_type_error(self):
        """Test that a factory returning the wrong kind is a programming error."""
        wrong = Present(ObjectIdentity(ResourceKind.CONFIG_MAP, "web", NAMESPACE))
        task = make_task(factory=StubFactory({WEB_SERVICE: wrong}))
        with pytest.raises(TypeError, match="ConfigMap"):
            task.run()

    def test_factory_bug_propagates_unwrapped(self):
        """Test that a KeyError inside the factory is not reported as configuration."""
        task = make_task(factory=StubFactory({WEB_SERVICE: KeyError("service")}))
        with pytest.raises(KeyError):
            task.run()


class TestFailFast:
    """Tests for abort-on-first-error behaviour."""

    def test_apply_failure_aborts_and_skips_retirement(self):
        client = RecordingClient()
        client.fail_on(APPLY, identity_of(WEB_SERVICE), RuntimeError("forbidden"))
        with pytest.raises(ReconciliationError) as exc:
            make_task(client).run()
        assert str(exc.value) == "reconciling ns/web Service failed: forbidden"
        assert exc.value.step == "reconciling"
        assert exc.value.identity == identity_of(WEB_SERVICE)
        assert client.identities() == [identity_of(WEB_SA)]

    def test_delete_failure_reports_deleting_step(self):
        client = RecordingClient()
        client.fail_on(DELETE, identity_of(OLD_SERVICE), RuntimeError("conflict"))
        with pytest.raises(ReconciliationError, match="deleting ns/old Service failed"):
            make_task(client).run()
        assert client.identities(DELETE) == [identity_of(OLD_MONITOR)]

    def test_client_bug_propagates_unwrapped(self):
        """Test that a client lookup failure on an unmapped kind is not a reconciliation error."""
        client = RecordingClient()
        client.fail_on(APPLY, identity_of(WEB_SERVICE), KeyError(ResourceKind.SERVICE))
        with pytest.raises(KeyError):
            make_task(client).run()
        assert client.identities() == [identity_of(WEB_SA)]

    def test_error_chains_cause(self):
        client = RecordingClient()
        cause = RuntimeError("boom")
        client.fail_on(APPLY, identity_of(WEB_SA), cause)
        with pytest.raises(ReconciliationError) as exc:
            make_task(client).run()
        assert exc.value.__cause__ is cause


class TestRetirement:
    """Tests for removing retired component resources."""

    def test_deleting_absent_objects_succeeds(self):
        """Test that retirement on a clean cluster records absent deletes."""
        client = RecordingClient()
        make_task(client).run()
        deletes = [c.result for c in client.calls if c.action == DELETE]
        assert deletes == [RESULT_ABSENT] * 3

    def test_existing_retired_objects_are_deleted(self):
        residual = ObjectIdentity(ResourceKind.DEPLOYMENT, "old", NAMESPACE)
        client = RecordingClient({identity_of(OLD_SERVICE): {}, residual: {}})
        make_task(client).run()
        assert identity_of(OLD_SERVICE) not in client.objects
        assert residual not in client.objects
        results = {c.identity: c.result for c in client.calls if c.action == DELETE}
        assert results[residual] == DELETED

    def test_required_retired_asset_absent_fails(self):
        client = RecordingClient()
        task = make_task(client, StubFactory({OLD_MONITOR: ABSENT}))
        with pytest.raises(ConfigurationError, match="initializing old ServiceMonitor"):
            task.run()
        assert client.identities(DELETE) == []

    def test_remove_retired_resources_directly(self):
        client = RecordingClient()
        task = make_task(client)
        task.remove_retired_resources(Context.background(), OLD)
        assert client.identities() == delete_order()


class TestCancellation:
    """Tests for cancelled contexts."""

    def test_cancelled_context_fails_first_call(self):
        ctx = Context.background()
        ctx.cancel()
        client = RecordingClient()
        with pytest.raises(CancellationError) as exc:
            make_task(client, ctx=ctx).run()
        assert exc.value.identity == identity_of(WEB_SA)
        assert "context canceled" in str(exc.value)
        assert client.calls == []

    def test_run_uses_given_context_over_construction_context(self):
        cancelled = Context.background()
        cancelled.cancel()
        client = RecordingClient()
        make_task(client, ctx=cancelled).run(Context.background())
        assert len(client.calls) == 7


class TestIdempotence:
    """Tests for re-running a successful task."""

    def test_rerun_converges(self):
        client = RecordingClient()
        task = make_task(client)
        task.run()
        state = dict(client.objects)
        client.calls.clear()
        task.run()
        assert client.objects == state
        applies = [c.result for c in client.calls if c.action == APPLY]
        assert applies == [UNCHANGED] * 4

    def test_first_run_creates(self):
        client = RecordingClient()
        make_task(client).run()
        applies = [c.result for c in client.calls if c.action == APPLY]
        assert applies == [CREATED] * 4
