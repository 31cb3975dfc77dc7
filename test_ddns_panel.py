#!/usr/bin/env python3
"""
Test suite for DDNS Panel

This module provides comprehensive testing for all components of the panel.
"""

import asyncio
import os
import shutil
import tempfile
import unittest
from unittest.mock import AsyncMock, Mock, patch

import httpx
import yaml

from ddns_panel.core.connection_monitor import ConnectionMonitor
from ddns_panel.core.models import DnsRecordConfig, IpType, RecordStatus
from ddns_panel.cli.main import load_config as cli_load_config
from ddns_panel.core.panel import ControlPanel, load_config, merge_config
from ddns_panel.core.record_store import RecordStore
from ddns_panel.core.setup_wizard import SetupWizard, WizardStep
from ddns_panel.exceptions import ApiError, StateError, TransportError, ValidationError
from ddns_panel.providers.ddns_client import DdnsClient
from ddns_panel.providers.gateway import ConnectionStatus, RequestGateway
from ddns_panel.providers.mock_provider import MockDdnsApi
from ddns_panel.utils.validators import (
    mask_token,
    validate_fqdn,
    validate_record_config,
    validate_update_interval,
)

BASE_URL = "http://ddns.test/api"


def make_config(record_id="r1", record_name="a.example.com", **overrides):
    values = {
        "zone_id": "z1",
        "api_token": "t1",
        "record_name": record_name,
        "record_id": record_id,
        "ip_type": IpType.IPV4,
        "update_interval": 300,
    }
    values.update(overrides)
    return DnsRecordConfig(**values)


def make_store(api=None):
    api = api or MockDdnsApi()
    gateway = RequestGateway(BASE_URL, retry_delay=0, transport=httpx.MockTransport(api.handle))
    return RecordStore(DdnsClient({}, gateway=gateway)), api


class TestValidators(unittest.TestCase):
    """Test the validation functions."""

    def test_validate_fqdn_valid(self):
        """Test valid FQDN validation."""
        valid_fqdns = [
            "example.com",
            "a.example.com",
            "home.example.com.",
            "1host.example.com",
            "*.example.com",
        ]

        for fqdn in valid_fqdns:
            with self.subTest(fqdn=fqdn):
                self.assertTrue(validate_fqdn(fqdn))

    def test_validate_fqdn_invalid(self):
        """Test invalid FQDN validation."""
        invalid_fqdns = [
            "",
            "single",
            ".example.com",
            "example..com",
            "example-.com",
            "-example.com",
            "a" * 64 + ".com",
        ]

        for fqdn in invalid_fqdns:
            with self.subTest(fqdn=fqdn):
                self.assertFalse(validate_fqdn(fqdn))

    def test_validate_update_interval(self):
        self.assertTrue(validate_update_interval(60))
        self.assertTrue(validate_update_interval(300))
        self.assertFalse(validate_update_interval(59))
        self.assertFalse(validate_update_interval("300"))
        self.assertFalse(validate_update_interval(True))

    def test_validate_record_config(self):
        self.assertEqual(validate_record_config(make_config()), [])

        errors = validate_record_config(
            make_config(zone_id="", api_token=" ", update_interval=30)
        )
        self.assertEqual(len(errors), 3)

    def test_mask_token(self):
        self.assertEqual(mask_token(""), "")
        self.assertEqual(mask_token("short"), "*****")
        self.assertEqual(mask_token("abcd1234efgh"), "abcd****efgh")


class TestDnsRecordConfig(unittest.TestCase):
    """Test the record model."""

    def test_record_type_is_derived(self):
        config = make_config()
        self.assertEqual(config.record_type, "A")

        config = config.copy(ip_type="ipv6")
        self.assertEqual(config.ip_type, IpType.IPV6)
        self.assertEqual(config.record_type, "AAAA")
        self.assertEqual(IpType.from_record_type("AAAA"), IpType.IPV6)

    def test_from_raw_applies_defaults(self):
        config = DnsRecordConfig.from_raw(
            {"record_id": "r1", "zone_id": "z1", "api_token": "t", "record_name": "a.example.com"}
        )

        self.assertEqual(config.ip_type, IpType.IPV4)
        self.assertEqual(config.current_ip, "unknown")
        self.assertEqual(config.update_interval, 300)
        self.assertIsNone(config.last_update_time)
        self.assertEqual(config.status, RecordStatus.UNKNOWN)

    def test_from_raw_maps_remote_status(self):
        ok = DnsRecordConfig.from_raw({"record_id": "r1", "status": "ok"})
        failed = DnsRecordConfig.from_raw({"record_id": "r2", "status": "error"})

        self.assertEqual(ok.status, RecordStatus.ACTIVE)
        self.assertEqual(failed.status, RecordStatus.ERROR)

    def test_payload_omits_missing_record_id(self):
        payload = make_config(record_id=None).to_payload()

        self.assertNotIn("record_id", payload)
        self.assertNotIn("current_ip", payload)
        self.assertEqual(payload["ip_type"], "ipv4")
        self.assertTrue(make_config(record_id=None).is_pending)


class TestRequestGateway(unittest.IsolatedAsyncioTestCase):
    """Test retry and health probing in the request gateway."""

    def make_gateway(self, handler, **kwargs):
        kwargs.setdefault("retry_delay", 0)
        self.gateway = RequestGateway(BASE_URL, transport=httpx.MockTransport(handler), **kwargs)
        return self.gateway

    async def asyncTearDown(self):
        await self.gateway.aclose()

    async def test_call_returns_json(self):
        seen = []

        def handler(request):
            seen.append(request.url.path)
            return httpx.Response(200, json={"success": True})

        gateway = self.make_gateway(handler)
        body = await gateway.call("/configs")

        self.assertEqual(body, {"success": True})
        self.assertEqual(seen, ["/api/configs"])

    async def test_transport_failure_retried_three_times(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            raise httpx.ConnectError("offline", request=request)

        gateway = self.make_gateway(handler)
        with self.assertRaises(TransportError) as ctx:
            await gateway.call("/configs")

        self.assertEqual(len(attempts), 3)
        self.assertEqual(ctx.exception.attempts, 3)
        self.assertIsInstance(ctx.exception.__cause__, httpx.ConnectError)

    async def test_retry_waits_between_attempts_only(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        gateway = self.make_gateway(handler, retry_delay=1.0)
        with patch("ddns_panel.providers.gateway.asyncio.sleep", new=AsyncMock()) as sleep:
            with self.assertRaises(TransportError):
                await gateway.call("/configs")

        self.assertEqual(sleep.await_count, 2)
        sleep.assert_awaited_with(1.0)

    async def test_recovers_after_transient_failure(self):
        api = MockDdnsApi()
        api.fail_transport(times=2)
        gateway = self.make_gateway(api.handle)

        body = await gateway.call("/configs")

        self.assertTrue(body["success"])
        self.assertEqual(len(api.calls_to("/configs")), 1)

    async def test_http_error_not_retried(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            return httpx.Response(400, json={"success": False, "message": "bad config"})

        gateway = self.make_gateway(handler)
        with self.assertRaises(ApiError) as ctx:
            await gateway.call("/configs", method="POST", json={"configs": []})

        self.assertEqual(len(attempts), 1)
        self.assertEqual(ctx.exception.status, 400)
        self.assertEqual(ctx.exception.body["message"], "bad config")
        self.assertEqual(str(ctx.exception), "bad config")

    async def test_probe_health_online(self):
        headers = []

        def handler(request):
            headers.append(request.headers.get("cache-control"))
            return httpx.Response(200, json={"status": "operational"})

        gateway = self.make_gateway(handler)
        self.assertEqual(gateway.connection_status, ConnectionStatus.UNKNOWN)

        self.assertTrue(await gateway.probe_health())
        self.assertEqual(gateway.connection_status, ConnectionStatus.ONLINE)
        self.assertEqual(headers, ["no-cache"])

    async def test_probe_health_failures_report_offline(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            raise httpx.ConnectError("offline", request=request)

        gateway = self.make_gateway(handler)

        self.assertFalse(await gateway.probe_health())
        self.assertEqual(gateway.connection_status, ConnectionStatus.OFFLINE)
        self.assertEqual(len(attempts), 1)

        gateway.reset_connection_status()
        self.assertEqual(gateway.connection_status, ConnectionStatus.UNKNOWN)

    async def test_probe_health_non_success_status(self):
        gateway = self.make_gateway(lambda request: httpx.Response(503))

        self.assertFalse(await gateway.probe_health())
        self.assertEqual(gateway.connection_status, ConnectionStatus.OFFLINE)


class TestDdnsClient(unittest.IsolatedAsyncioTestCase):
    """Test the typed API client."""

    async def asyncSetUp(self):
        self.client = DdnsClient({"api": {"backend": "mock", "base_url": BASE_URL}})
        self.api = self.client.mock_api

    async def asyncTearDown(self):
        await self.client.aclose()

    async def test_unsuccessful_body_raises_api_error(self):
        self.api.reject_saves = True

        with self.assertRaises(ApiError) as ctx:
            await self.client.save_configs([])

        self.assertEqual(ctx.exception.status, 200)
        self.assertIn("Saving is disabled", str(ctx.exception))

    async def test_invalid_config_raises_validation_error(self):
        with self.assertRaises(ValidationError):
            await self.client.validate_config({"zone_id": "z1"})

    async def test_failed_validate_request_raises_api_error(self):
        self.api.fail_next(
            "/configs/validate", status_code=200, body={"success": False, "message": "backend down"}
        )

        with self.assertRaises(ApiError) as ctx:
            await self.client.validate_config(make_config().to_payload())

        self.assertNotIsInstance(ctx.exception, ValidationError)
        self.assertIn("backend down", str(ctx.exception))

    async def test_trigger_update_for_one_record(self):
        self.api.configs = [make_config().to_payload()]

        result = await self.client.trigger_update(domain="a.example.com", record_id="r1")

        self.assertTrue(result["updated"])
        self.assertEqual(
            self.api.calls_to("/update"), [{"domain": "a.example.com", "record_id": "r1"}]
        )

    async def test_ip_and_wizard_endpoints(self):
        self.assertEqual((await self.client.get_ip("ipv6"))["ip"], "2001:db8::10")
        self.assertEqual(await self.client.validate_token("t1"), self.api.zones)
        records = await self.client.get_zone_records("t1", "z1")
        self.assertEqual(records[0]["id"], "r1")


class TestRecordStore(unittest.IsolatedAsyncioTestCase):
    """Test full-set persistence and cache reconciliation."""

    async def asyncSetUp(self):
        self.store, self.api = make_store()
        await self.store.load()

    async def asyncTearDown(self):
        await self.store.client.aclose()

    def saved_payloads(self):
        return [body["configs"] for body in self.api.calls_to("/configs", method="POST")]

    async def test_load_replaces_cache(self):
        self.api.configs = [make_config("r1").to_payload(), make_config("r2", "b.example.com").to_payload()]

        records = await self.store.load()

        self.assertEqual([r.record_id for r in records], ["r1", "r2"])
        self.assertEqual(len(self.store), 2)
        self.assertEqual(self.store.get("r1").status, RecordStatus.ACTIVE)

    async def test_failed_load_leaves_cache_unchanged(self):
        await self.store.upsert(make_config("r1"))
        before = self.store.records

        self.api.fail_next("/configs", status_code=500)
        with self.assertRaises(ApiError):
            await self.store.load()

        self.assertEqual(self.store.records, before)

    async def test_upsert_sequence_matches_last_save(self):
        await self.store.upsert(make_config("r1"))
        await self.store.upsert(make_config("r2", "b.example.com"))
        await self.store.upsert(make_config("r1", update_interval=600))
        await self.store.remove("r2")

        cached = [record.to_payload() for record in self.store.records]
        self.assertEqual(cached, self.saved_payloads()[-1])
        self.assertEqual(self.store.get("r1").update_interval, 600)

    async def test_failed_save_leaves_cache_unchanged(self):
        await self.store.upsert(make_config("r1"))
        before = self.store.records

        self.api.reject_saves = True
        with self.assertRaises(ApiError):
            await self.store.upsert(make_config("r2", "b.example.com"))
        with self.assertRaises(ApiError):
            await self.store.upsert(make_config("r1", update_interval=900))

        self.assertEqual(self.store.records, before)

    async def test_remove_failure_keeps_record(self):
        await self.store.upsert(make_config("r1"))

        self.api.reject_saves = True
        with self.assertRaises(ApiError):
            await self.store.remove("r1")

        self.assertEqual(self.saved_payloads()[-1], [])
        self.assertIsNotNone(self.store.get("r1"))

    async def test_remove_unknown_record(self):
        with self.assertRaises(StateError):
            await self.store.remove("missing")

        self.assertEqual(self.saved_payloads(), [])

    async def test_local_validation_blocks_save(self):
        with self.assertRaises(ValidationError):
            await self.store.upsert(make_config("r1", update_interval=59))

        self.assertEqual(self.saved_payloads(), [])
        self.assertTrue(self.store.is_empty)

    async def test_pending_record_is_appended(self):
        stored = await self.store.upsert(make_config(record_id=None))

        self.assertTrue(stored.is_pending)
        self.assertEqual(len(self.store), 1)
        self.assertNotIn("record_id", self.saved_payloads()[-1][0])

    async def test_concurrent_upserts_are_serialized(self):
        await asyncio.gather(
            self.store.upsert(make_config("r1")),
            self.store.upsert(make_config("r2", "b.example.com")),
        )

        payloads = self.saved_payloads()
        self.assertEqual(len(payloads[0]), 1)
        self.assertEqual(len(payloads[1]), 2)
        self.assertEqual(len(self.api.configs), 2)

    async def test_trigger_update_does_not_touch_cache(self):
        await self.store.upsert(make_config("r1"))

        await self.store.trigger_remote_update()

        self.assertEqual(self.store.get("r1").current_ip, "unknown")
        records = await self.store.load()
        self.assertEqual(records[0].current_ip, self.api.detected_ipv4)
        self.assertIsNotNone(records[0].last_update_time)

    async def test_validate_rejection(self):
        with self.assertRaises(ValidationError):
            await self.store.validate(make_config("r1", update_interval=10))

    async def test_saves_refused_before_first_load(self):
        store, api = make_store(MockDdnsApi([make_config("r1").to_payload()]))
        api.fail_next("/configs", status_code=500)

        with self.assertRaises(ApiError):
            await store.load()
        self.assertFalse(store.loaded)
        with self.assertRaises(StateError):
            await store.upsert(make_config("r2", "b.example.com"))
        with self.assertRaises(StateError):
            await store.remove("r1")

        self.assertEqual(api.calls_to("/configs", method="POST"), [])
        self.assertEqual([c["record_id"] for c in api.configs], ["r1"])
        await store.client.aclose()

    async def test_malformed_config_fails_load(self):
        await self.store.upsert(make_config("r1"))
        before = self.store.records
        self.api.configs.append(
            {**make_config("r2", "b.example.com").to_payload(), "ip_type": "IPv4"}
        )

        with self.assertRaises(ApiError) as ctx:
            await self.store.load()

        self.assertIn("Malformed record config", str(ctx.exception))
        self.assertEqual(self.store.records, before)


class TestConnectionMonitor(unittest.IsolatedAsyncioTestCase):
    """Test connection state transitions."""

    async def asyncSetUp(self):
        self.gateway = Mock()
        self.gateway.probe_health = AsyncMock(return_value=True)
        self.store = Mock()
        self.store.load = AsyncMock(return_value=[])
        self.transitions = []
        self.monitor = ConnectionMonitor(
            self.gateway, record_store=self.store, poll_interval=60, settle_delay=0.01
        )
        self.monitor.subscribe(lambda old, new: self.transitions.append((old, new)))

    async def asyncTearDown(self):
        await self.monitor.stop()

    async def test_start_probes_immediately(self):
        await self.monitor.start()

        self.assertTrue(self.monitor.running)
        self.assertEqual(self.monitor.state, ConnectionStatus.ONLINE)
        self.gateway.probe_health.assert_awaited_once()
        self.assertEqual(
            self.transitions, [(ConnectionStatus.UNKNOWN, ConnectionStatus.ONLINE)]
        )
        self.store.load.assert_not_awaited()

    async def test_failed_probes_notify_once(self):
        self.gateway.probe_health.return_value = False

        await self.monitor.check_now()
        await self.monitor.check_now()

        self.assertEqual(self.monitor.state, ConnectionStatus.OFFLINE)
        self.assertEqual(
            self.transitions, [(ConnectionStatus.UNKNOWN, ConnectionStatus.OFFLINE)]
        )

    async def test_reconnect_signal_needs_successful_probe(self):
        self.gateway.probe_health.return_value = False
        await self.monitor.check_now()

        self.monitor.settle_delay = 60
        self.monitor.notify_network_online()
        await asyncio.sleep(0)
        self.assertEqual(self.monitor.state, ConnectionStatus.OFFLINE)

        self.monitor.settle_delay = 0.01
        self.gateway.probe_health.return_value = True
        self.monitor.notify_network_online()
        await asyncio.sleep(0.05)

        self.assertEqual(self.monitor.state, ConnectionStatus.ONLINE)
        self.assertEqual(self.transitions[-1], (ConnectionStatus.OFFLINE, ConnectionStatus.ONLINE))
        self.store.load.assert_awaited_once()

    async def test_reconnect_with_failed_probe_stays_offline(self):
        self.gateway.probe_health.return_value = False
        await self.monitor.check_now()

        self.monitor.notify_network_online()
        await asyncio.sleep(0.05)

        self.assertEqual(self.monitor.state, ConnectionStatus.OFFLINE)
        self.assertEqual(len(self.transitions), 1)

    async def test_offline_signal_probes_before_flipping(self):
        await self.monitor.check_now()
        self.gateway.probe_health.return_value = False

        self.monitor.notify_network_offline()
        await asyncio.sleep(0.01)

        self.assertEqual(self.monitor.state, ConnectionStatus.OFFLINE)
        self.assertEqual(self.gateway.probe_health.await_count, 2)

    async def test_refresh_failure_is_not_fatal(self):
        self.store.load.side_effect = TransportError("down", attempts=3)
        self.gateway.probe_health.return_value = False
        await self.monitor.check_now()
        self.gateway.probe_health.return_value = True

        await self.monitor.check_now()

        self.assertEqual(self.monitor.state, ConnectionStatus.ONLINE)

    async def test_polling_survives_failed_check(self):
        results = iter([True, RuntimeError("boom")])

        async def probe():
            outcome = next(results, False)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        self.gateway.probe_health = AsyncMock(side_effect=probe)
        self.monitor.poll_interval = 0.01
        await self.monitor.start()
        await asyncio.sleep(0.1)

        self.assertTrue(self.monitor.running)
        self.assertEqual(self.monitor.state, ConnectionStatus.OFFLINE)
        self.assertGreaterEqual(self.gateway.probe_health.await_count, 3)

    async def test_polling_continues(self):
        self.monitor.poll_interval = 0.01
        await self.monitor.start()
        await asyncio.sleep(0.05)

        self.assertGreaterEqual(self.gateway.probe_health.await_count, 2)

    async def test_stop_silences_notifications(self):
        await self.monitor.start()
        self.monitor.notify_network_offline()
        await self.monitor.stop()

        self.assertFalse(self.monitor.running)
        self.gateway.probe_health.return_value = False
        await self.monitor.check_now()
        self.monitor.notify_network_online()
        await asyncio.sleep(0.05)

        self.assertEqual(len(self.transitions), 1)
        self.assertEqual(self.monitor.state, ConnectionStatus.ONLINE)

    async def test_failing_listener_does_not_block_others(self):
        seen = []
        self.monitor.subscribe(Mock(side_effect=RuntimeError("boom")))
        unsubscribe = self.monitor.subscribe(lambda old, new: seen.append(new))

        await self.monitor.check_now()
        unsubscribe()
        self.gateway.probe_health.return_value = False
        await self.monitor.check_now()

        self.assertEqual(seen, [ConnectionStatus.ONLINE])
        self.assertEqual(len(self.transitions), 2)


class TestSetupWizard(unittest.IsolatedAsyncioTestCase):
    """Test the setup wizard state machine."""

    def setUp(self):
        self.store = Mock()
        self.store.validate = AsyncMock()
        self.store.upsert = AsyncMock(side_effect=lambda config: config)
        self.store.load = AsyncMock(return_value=[])
        self.wizard = SetupWizard(self.store)

    def advance_to_policy(self):
        self.wizard.submit_token("t1")
        self.wizard.submit_zone_record("z1", "a.example.com", "r1")

    def test_empty_token_rejected(self):
        for token in ("", "   ", None):
            with self.subTest(token=token):
                with self.assertRaises(ValidationError):
                    self.wizard.submit_token(token)
                self.assertEqual(self.wizard.step, WizardStep.COLLECT_TOKEN)

    def test_zone_record_fields_required(self):
        self.wizard.submit_token("t1")

        with self.assertRaises(ValidationError) as ctx:
            self.wizard.submit_zone_record("z1", "a.example.com", "")

        self.assertEqual(ctx.exception.field, "record_id")
        self.assertEqual(self.wizard.step, WizardStep.COLLECT_ZONE_RECORD)

    def test_back_preserves_fields(self):
        self.advance_to_policy()

        self.wizard.back()
        self.assertEqual(self.wizard.step, WizardStep.COLLECT_ZONE_RECORD)
        self.wizard.back()
        self.assertEqual(self.wizard.step, WizardStep.COLLECT_TOKEN)
        self.assertEqual(self.wizard.state.zone_id, "z1")
        self.assertEqual(self.wizard.state.api_token, "t1")

        with self.assertRaises(StateError):
            self.wizard.back()

    def test_steps_cannot_be_skipped(self):
        with self.assertRaises(StateError):
            self.wizard.submit_zone_record("z1", "a.example.com", "r1")

    async def test_finish_requires_policy_step(self):
        with self.assertRaises(StateError):
            await self.wizard.finish("ipv4", 300)

        self.store.validate.assert_not_awaited()

    async def test_short_interval_rejected(self):
        self.advance_to_policy()

        with self.assertRaises(ValidationError):
            await self.wizard.finish("ipv4", 30)

        self.assertEqual(self.wizard.step, WizardStep.COLLECT_POLICY)
        self.store.validate.assert_not_awaited()

    async def test_invalid_config_is_not_saved(self):
        self.advance_to_policy()
        self.store.validate.side_effect = ValidationError("token rejected")

        with self.assertRaises(ValidationError):
            await self.wizard.finish("ipv4", 300)

        self.store.upsert.assert_not_awaited()
        self.assertEqual(self.wizard.step, WizardStep.COLLECT_POLICY)
        self.assertEqual(self.wizard.state.record_id, "r1")
        self.assertEqual(self.wizard.last_error, "token rejected")

    async def test_save_failure_keeps_state(self):
        self.advance_to_policy()
        self.store.upsert.side_effect = ApiError(200, {"success": False, "message": "disk full"})

        with self.assertRaises(ApiError):
            await self.wizard.finish("ipv6", 120)

        self.assertEqual(self.wizard.step, WizardStep.COLLECT_POLICY)
        self.assertEqual(self.wizard.state.update_interval, 120)

    async def test_finish_success(self):
        self.advance_to_policy()

        stored = await self.wizard.finish("ipv4", 300)

        self.assertEqual(stored.record_id, "r1")
        self.assertEqual(stored.api_token, "t1")
        self.assertEqual(self.wizard.step, WizardStep.DONE)
        self.assertIsNone(self.wizard.state)
        self.store.load.assert_awaited_once()

    def test_abort_discards_state(self):
        self.wizard.submit_token("t1")
        self.wizard.abort()

        self.assertEqual(self.wizard.step, WizardStep.ABORTED)
        self.assertIsNone(self.wizard.state)
        with self.assertRaises(StateError):
            self.wizard.abort()


class TestControlPanel(unittest.IsolatedAsyncioTestCase):
    """Integration tests for the complete panel against the mock API."""

    async def asyncSetUp(self):
        self.panel = ControlPanel(
            {"api": {"backend": "mock", "base_url": BASE_URL}, "retry": {"delay_seconds": 0}}
        )
        self.api = self.panel.client.mock_api

    async def asyncTearDown(self):
        await self.panel.stop()

    async def test_first_run_setup(self):
        result = await self.panel.start(monitor=False)

        self.assertTrue(result.success)
        self.assertTrue(self.panel.needs_setup)

        self.assertTrue(self.panel.submit_token("t1"))
        self.assertTrue(self.panel.submit_zone_record("z1", "a.example.com", "r1"))
        result = await self.panel.finish_setup("ipv4", 300)

        self.assertTrue(result.success, result.message)
        self.assertFalse(self.panel.needs_setup)
        self.assertEqual([r.record_id for r in self.panel.records], ["r1"])
        self.assertEqual(len(self.api.calls_to("/configs/validate")), 1)
        saved = self.api.calls_to("/configs", method="POST")
        self.assertEqual(len(saved), 1)
        self.assertEqual(saved[0]["configs"][0]["record_id"], "r1")

    async def test_existing_records_skip_setup(self):
        self.api.configs = [make_config().to_payload()]

        await self.panel.start(monitor=False)

        self.assertFalse(self.panel.needs_setup)

    async def test_failed_initial_load_does_not_open_wizard(self):
        self.api.fail_transport(times=3)

        result = await self.panel.start(monitor=False)

        self.assertFalse(result.success)
        self.assertFalse(self.panel.needs_setup)

    async def test_failed_delete_keeps_record(self):
        self.api.configs = [make_config().to_payload()]
        await self.panel.start(monitor=False)
        self.api.reject_saves = True

        result = await self.panel.delete_record("r1")

        self.assertFalse(result.success)
        self.assertIn("Saving is disabled", result.message)
        self.assertEqual(self.api.calls_to("/configs", method="POST"), [{"configs": []}])
        self.assertEqual([r.record_id for r in self.panel.records], ["r1"])

    async def test_edit_record(self):
        self.api.configs = [make_config().to_payload()]
        await self.panel.start(monitor=False)

        result = await self.panel.edit_record("r1", record_type="AAAA", update_interval=120)

        self.assertTrue(result.success, result.message)
        self.assertEqual(self.panel.records[0].record_type, "AAAA")
        self.assertEqual(self.api.configs[0]["ip_type"], "ipv6")

    async def test_edit_rejects_zone_change(self):
        self.api.configs = [make_config().to_payload()]
        await self.panel.start(monitor=False)

        result = await self.panel.edit_record("r1", zone_id="z2")

        self.assertFalse(result.success)
        self.assertEqual(self.api.calls_to("/configs", method="POST"), [])

    async def test_add_record_with_bad_interval(self):
        await self.panel.start(monitor=False)

        result = await self.panel.add_record("z1", "t1", "a.example.com", "r1", update_interval=10)

        self.assertFalse(result.success)
        self.assertIsInstance(result.data, ValidationError)

    async def test_update_now_reloads(self):
        self.api.configs = [make_config().to_payload()]
        await self.panel.start(monitor=False)

        result = await self.panel.update_now("r1")

        self.assertTrue(result.success, result.message)
        self.assertEqual(self.panel.records[0].current_ip, self.api.detected_ipv4)

    async def test_commands_report_errors_instead_of_raising(self):
        await self.panel.start(monitor=False)

        self.assertFalse(await self.panel.delete_record("missing"))
        self.assertFalse(await self.panel.update_now("missing"))
        self.assertFalse(await self.panel.finish_setup("ipv4", 300))
        self.assertFalse(await self.panel.add_record("z1", "t1", "a.example.com", ip_type="ipv5"))

    async def test_status_and_ip(self):
        status = await self.panel.get_service_status()
        ip = await self.panel.get_current_ip("ipv4")

        self.assertTrue(status.success)
        self.assertEqual(ip.data, self.api.detected_ipv4)

    async def test_invalid_detected_address(self):
        self.api.fail_next("/ip/v6", status_code=200, body={"success": True, "ip": "203.0.113.10"})

        result = await self.panel.get_current_ip("ipv6")

        self.assertFalse(result.success)
        self.assertIsInstance(result.data, ApiError)

    async def test_reconnect_refreshes_records(self):
        self.api.healthy = False
        await self.panel.start()
        self.assertEqual(self.panel.connection_status, ConnectionStatus.OFFLINE)

        self.api.healthy = True
        self.api.configs = [make_config().to_payload()]
        self.panel.monitor.settle_delay = 0
        self.panel.notify_network_online()
        await asyncio.sleep(0.05)

        self.assertEqual(self.panel.connection_status, ConnectionStatus.ONLINE)
        self.assertEqual([r.record_id for r in self.panel.records], ["r1"])

    async def test_malformed_config_reported_as_failure(self):
        self.api.configs = [{**make_config().to_payload(), "ip_type": "IPv4"}]

        result = await self.panel.start(monitor=False)

        self.assertFalse(result.success)
        self.assertIsInstance(result.data, ApiError)
        self.assertFalse(self.panel.needs_setup)

    async def test_add_after_failed_load_keeps_remote_set(self):
        self.api.configs = [make_config().to_payload()]
        self.api.fail_transport(times=3)
        self.assertFalse(await self.panel.start(monitor=False))

        result = await self.panel.add_record("z1", "t1", "b.example.com", "r2")

        self.assertFalse(result.success)
        self.assertIsInstance(result.data, StateError)
        self.assertEqual(self.api.calls_to("/configs", method="POST"), [])
        self.assertEqual([c["record_id"] for c in self.api.configs], ["r1"])

    async def test_malformed_config_on_reconnect_keeps_monitoring(self):
        self.api.configs = [make_config().to_payload()]
        self.api.healthy = False
        self.panel.monitor.settle_delay = 0
        self.panel.monitor.poll_interval = 0.01
        await self.panel.start()

        self.api.configs[0]["update_interval"] = "five minutes"
        self.api.healthy = True
        self.panel.notify_network_online()
        await asyncio.sleep(0.05)

        self.assertEqual(self.panel.connection_status, ConnectionStatus.ONLINE)
        self.assertTrue(self.panel.monitor.running)
        self.assertEqual(self.panel.records[0].update_interval, 300)

        self.api.healthy = False
        await asyncio.sleep(0.05)

        self.assertEqual(self.panel.connection_status, ConnectionStatus.OFFLINE)


class TestConfiguration(unittest.TestCase):
    """Test configuration loading."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.config_file = os.path.join(self.temp_dir, "test_config.yaml")

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_yaml_overrides_defaults(self):
        with open(self.config_file, "w") as f:
            yaml.dump({"api": {"backend": "mock"}, "retry": {"max_attempts": 5}}, f)

        panel = ControlPanel(self.config_file)

        self.assertIsNotNone(panel.client.mock_api)
        self.assertEqual(panel.client.gateway.max_attempts, 5)
        self.assertEqual(panel.client.gateway.retry_delay, 1.0)
        self.assertEqual(panel.monitor.poll_interval, 30)

    def test_missing_file_uses_defaults(self):
        panel = ControlPanel(os.path.join(self.temp_dir, "missing.yaml"))

        self.assertIsNone(panel.client.mock_api)
        self.assertEqual(panel.client.gateway.base_url, "http://localhost:8080/api")

    def test_cli_and_panel_share_loader(self):
        with open(self.config_file, "w") as f:
            yaml.dump({"monitor": {"poll_interval_seconds": 5}}, f)

        self.assertEqual(cli_load_config(self.config_file), load_config(self.config_file))
        self.assertEqual(load_config(self.config_file)["monitor"]["settle_delay_seconds"], 2)

    def test_cli_exits_on_malformed_yaml(self):
        with open(self.config_file, "w") as f:
            f.write("api: [unclosed\n")

        with patch("builtins.print"):
            with self.assertRaises(SystemExit):
                cli_load_config(self.config_file)

    def test_merge_config_is_deep(self):
        merged = merge_config({"a": {"b": 1, "c": 2}}, {"a": {"c": 3}})

        self.assertEqual(merged, {"a": {"b": 1, "c": 3}})


if __name__ == "__main__":
    # Run the tests
    unittest.main(verbosity=2)
