"""
Step definitions for DDNS Panel integration tests.
"""

import asyncio

from behave import given, then, when

from ddns_panel.core.models import DnsRecordConfig, IpType
from ddns_panel.core.panel import ControlPanel
from ddns_panel.core.setup_wizard import WizardStep
from ddns_panel.providers.gateway import ConnectionStatus


def _record_ids(context):
    return [record.record_id for record in context.panel.records]


@given("the DDNS panel is configured with the mock API")
def step_impl(context):
    """Create a panel backed by the in-memory API."""
    context.panel = ControlPanel(context.test_config)
    context.api = context.panel.client.mock_api
    assert context.api is not None
    context.panel.on_connection_change(
        lambda old, new: context.transitions.append((old, new))
    )


@given("the API has no stored records")
def step_impl(context):
    context.api.configs = []


@given('the API stores record "{record_id}" named "{record_name}"')
def step_impl(context, record_id, record_name):
    """Seed the mock API with one record config."""
    config = DnsRecordConfig(
        zone_id="z1",
        api_token="t1",
        record_name=record_name,
        record_id=record_id,
        ip_type=IpType.IPV4,
    )
    context.api.configs.append(config.to_payload())


@given("the API rejects saves")
def step_impl(context):
    context.api.reject_saves = True


@given("the API health check fails")
def step_impl(context):
    context.api.healthy = False


@given("the API health check recovers")
def step_impl(context):
    context.api.healthy = True


@given("the panel is started")
@when("the panel is started")
def step_impl(context):
    """Load records and start the connection monitor."""
    context.result = context.run(context.panel.start())


@when('I submit the token "{token}"')
def step_impl(context, token):
    context.result = context.panel.submit_token(token)


@when("I submit an empty token")
def step_impl(context):
    context.result = context.panel.submit_token("")


@when('I choose zone "{zone_id}" and record "{record_id}" named "{record_name}"')
def step_impl(context, zone_id, record_id, record_name):
    context.result = context.panel.submit_zone_record(zone_id, record_name, record_id)


@when('I finish setup with "{ip_type}" every {interval:d} seconds')
def step_impl(context, ip_type, interval):
    context.result = context.run(context.panel.finish_setup(ip_type, interval))


@when('I delete record "{record_id}"')
def step_impl(context, record_id):
    context.result = context.run(context.panel.delete_record(record_id))


@when('I change the interval of record "{record_id}" to {interval:d} seconds')
def step_impl(context, record_id, interval):
    context.result = context.run(
        context.panel.edit_record(record_id, update_interval=interval)
    )


@when('I trigger an update for record "{record_id}"')
def step_impl(context, record_id):
    context.result = context.run(context.panel.update_now(record_id))


@when("the host reports the network is back")
def step_impl(context):
    """Signal reconnect and give the scheduled probe time to run."""
    context.panel.notify_network_online()
    context.run(asyncio.sleep(0.05))


@then("the operation succeeds")
def step_impl(context):
    assert context.result.success, context.result.message


@then("the operation fails")
def step_impl(context):
    assert not context.result.success, context.result.message


@then("the setup wizard is shown")
def step_impl(context):
    assert context.panel.needs_setup


@then("the setup wizard is not shown")
def step_impl(context):
    assert not context.panel.needs_setup


@then('the wizard is at step "{step}"')
def step_impl(context, step):
    assert context.panel.wizard.step == WizardStep(step), context.panel.wizard.step


@then('the panel lists records "{record_ids}"')
def step_impl(context, record_ids):
    expected = [r.strip() for r in record_ids.split(",")]
    assert _record_ids(context) == expected, _record_ids(context)


@then("the panel lists no records")
def step_impl(context):
    assert _record_ids(context) == []


@then("the API received {count:d} validation request")
@then("the API received {count:d} validation requests")
def step_impl(context, count):
    assert len(context.api.calls_to("/configs/validate")) == count


@then("the API received {count:d} save request")
@then("the API received {count:d} save requests")
def step_impl(context, count):
    assert len(context.api.calls_to("/configs", method="POST")) == count


@then("the last save sent no records")
def step_impl(context):
    assert context.api.calls_to("/configs", method="POST")[-1] == {"configs": []}


@then('the API stores record "{record_id}" with interval {interval:d}')
def step_impl(context, record_id, interval):
    stored = {c["record_id"]: c for c in context.api.configs}
    assert stored[record_id]["update_interval"] == interval, stored


@then('record "{record_id}" shows the detected address')
def step_impl(context, record_id):
    record = context.panel.record_store.get(record_id)
    assert record.current_ip == context.api.detected_ipv4, record.current_ip


@then('the connection is "{status}"')
def step_impl(context, status):
    assert context.panel.connection_status == ConnectionStatus(status)


@then('the connection changed from "{old}" to "{new}"')
def step_impl(context, old, new):
    assert (ConnectionStatus(old), ConnectionStatus(new)) in context.transitions, context.transitions


@given("the API is unreachable for the first load")
def step_impl(context):
    context.api.fail_transport(times=context.test_config["retry"]["max_attempts"])


@when('I add record "{record_id}" named "{record_name}"')
def step_impl(context, record_id, record_name):
    context.result = context.run(
        context.panel.add_record("z1", "t1", record_name, record_id)
    )


@then('the API stores records "{record_ids}"')
def step_impl(context, record_ids):
    expected = [r.strip() for r in record_ids.split(",")]
    stored = [c["record_id"] for c in context.api.configs]
    assert stored == expected, stored
