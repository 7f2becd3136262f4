"""Unit tests for Lightsail operations (app/aws/lightsail.py)."""

import base64
from datetime import datetime
from unittest.mock import MagicMock, call, patch

import pytest
from botocore.exceptions import ClientError

from app.aws import lightsail
from app.core.exceptions import AWSOperationError, ValidationError


def client_error(code: str = "NotFoundException", operation: str = "GetStaticIp") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} raised"}}, operation)


@pytest.fixture(autouse=True)
def no_sleep():
    """Retries and polling loops must not actually wait."""
    with patch("app.aws.lightsail.time.sleep") as mock_sleep:
        yield mock_sleep


@pytest.fixture
def client():
    client = MagicMock()
    client.get_instances.return_value = {"instances": []}
    client.get_static_ips.return_value = {"staticIps": []}
    return client


def instance(name: str, public_ip: str = "1.2.3.4", **extra) -> dict:
    data = {
        "name": name,
        "state": {"name": "running"},
        "publicIpAddress": public_ip,
        "ipv6Addresses": ["2600:1f18::1"],
        "location": {"availabilityZone": "us-east-1a", "regionName": "us-east-1"},
        "bundleId": "nano_3_0",
        "blueprintId": "debian_12",
        "createdAt": datetime(2024, 5, 6, 7, 8, 9),
    }
    data.update(extra)
    return data


@pytest.mark.unit
class TestSanitize:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("My-Instance", "my-instance"),
            ("Name@123", "name123"),
            ("!!!", "x"),
            ("", "x"),
            ("Ubuntu_22.04 box", "ubuntu2204box"),
        ],
    )
    def test_sanitize(self, value, expected):
        assert lightsail.sanitize(value) == expected


@pytest.mark.unit
class TestListInstances:
    def test_maps_fields_and_attached_static_ips(self, client):
        client.get_instances.return_value = {
            "instances": [instance("web-1"), instance("web-2", public_ip=None, ipv6Addresses=[])]
        }
        client.get_static_ips.return_value = {
            "staticIps": [
                {"name": "sip-a", "ipAddress": "5.6.7.8", "attachedTo": "web-1", "isAttached": True},
                {"name": "sip-b", "ipAddress": "9.9.9.9", "attachedTo": "web-2", "isAttached": False},
            ]
        }

        views = lightsail.list_instances(client)

        assert [v.name for v in views] == ["web-1", "web-2"]
        web1, web2 = views
        assert web1.state == "running"
        assert web1.public_ipv4 == "1.2.3.4"
        assert web1.public_ipv6 == "2600:1f18::1"
        assert web1.static_ipv4 == "5.6.7.8"
        assert web1.zone == "us-east-1a"
        assert web1.bundle_id == "nano_3_0"
        assert web1.blueprint_id == "debian_12"
        assert web1.created == "2024-05-06 07:08:09"
        assert web2.public_ipv4 == ""
        assert web2.public_ipv6 == ""
        assert web2.static_ipv4 == ""

    def test_static_ip_without_is_attached_counts_as_attached(self, client):
        client.get_instances.return_value = {"instances": [instance("web-1")]}
        client.get_static_ips.return_value = {
            "staticIps": [{"name": "sip-a", "ipAddress": "5.6.7.8", "attachedTo": "web-1"}]
        }

        assert lightsail.list_instances(client)[0].static_ipv4 == "5.6.7.8"

    def test_static_ip_failure_is_ignored(self, client):
        client.get_instances.return_value = {"instances": [instance("web-1")]}
        client.get_static_ips.side_effect = client_error("AccessDeniedException", "GetStaticIps")

        views = lightsail.list_instances(client)

        assert views[0].static_ipv4 == ""

    def test_instance_failure_raises(self, client):
        client.get_instances.side_effect = client_error("UnauthenticatedException", "GetInstances")

        with pytest.raises(AWSOperationError, match="failed to list instances"):
            lightsail.list_instances(client)

    def test_follows_page_tokens(self, client):
        client.get_instances.side_effect = [
            {"instances": [instance("a")], "nextPageToken": "page-2"},
            {"instances": [instance("b")]},
        ]

        views = lightsail.list_instances(client)

        assert [v.name for v in views] == ["a", "b"]
        assert client.get_instances.call_args_list == [call(), call(pageToken="page-2")]


@pytest.mark.unit
class TestCreateInstance:
    def make_input(self, **overrides) -> lightsail.CreateInstanceInput:
        values = dict(
            instance_name="web-1",
            availability_zone="us-east-1a",
            blueprint_id="debian_12",
            bundle_id="nano_3_0",
        )
        values.update(overrides)
        return lightsail.CreateInstanceInput(**values)

    def test_create_defaults_to_dualstack(self, client):
        lightsail.create_instance(client, self.make_input(ip_address_type=""))

        client.create_instances.assert_called_once_with(
            instanceNames=["web-1"],
            availabilityZone="us-east-1a",
            blueprintId="debian_12",
            bundleId="nano_3_0",
            ipAddressType="dualstack",
        )
        client.open_instance_public_ports.assert_not_called()

    def test_rejects_unknown_ip_address_type(self, client):
        with pytest.raises(ValidationError) as exc_info:
            lightsail.create_instance(client, self.make_input(ip_address_type="ipv5"))

        assert exc_info.value.field == "ip_address_type"
        client.create_instances.assert_not_called()

    def test_user_data_is_passed(self, client):
        lightsail.create_instance(client, self.make_input(user_data="#!/bin/bash\necho hi\n", ip_address_type="ipv6"))

        kwargs = client.create_instances.call_args.kwargs
        assert kwargs["userData"] == "#!/bin/bash\necho hi\n"
        assert kwargs["ipAddressType"] == "ipv6"

    def test_opens_all_ports_after_delay(self, client, no_sleep):
        lightsail.create_instance(client, self.make_input(enable_firewall_all=True))

        no_sleep.assert_called_once_with(lightsail.OPEN_PORTS_DELAY)
        client.open_instance_public_ports.assert_called_once_with(
            instanceName="web-1",
            portInfo={"fromPort": 0, "toPort": 65535, "protocol": "all"},
        )

    def test_create_failure(self, client):
        client.create_instances.side_effect = client_error("InvalidInputException", "CreateInstances")

        with pytest.raises(AWSOperationError, match="failed to create instance"):
            lightsail.create_instance(client, self.make_input(enable_firewall_all=True))
        client.open_instance_public_ports.assert_not_called()

    def test_port_failure_reports_instance_created(self, client):
        client.open_instance_public_ports.side_effect = client_error(
            "InvalidInputException", "OpenInstancePublicPorts"
        )

        with pytest.raises(AWSOperationError, match="instance created but opening all ports failed") as exc_info:
            lightsail.create_instance(client, self.make_input(enable_firewall_all=True))

        assert exc_info.value.details["instance_created"] is True


@pytest.mark.unit
class TestRetriedActions:
    def test_reboot_retries_until_success(self, client):
        client.reboot_instance.side_effect = [client_error("OperationFailureException"), {}]

        lightsail.reboot_instance(client, "web-1")

        assert client.reboot_instance.call_count == 2
        client.reboot_instance.assert_called_with(instanceName="web-1")

    def test_reboot_gives_up_after_six_attempts(self, client):
        client.reboot_instance.side_effect = client_error("OperationFailureException")

        with pytest.raises(AWSOperationError, match="reboot instance failed"):
            lightsail.reboot_instance(client, "web-1")

        assert client.reboot_instance.call_count == 6

    def test_open_all_ports(self, client):
        lightsail.open_all_ports(client, "web-1")

        client.open_instance_public_ports.assert_called_once_with(
            instanceName="web-1",
            portInfo={"fromPort": 0, "toPort": 65535, "protocol": "all"},
        )


@pytest.mark.unit
class TestFindAttachedStaticIP:
    def test_finds_attached(self, client):
        client.get_static_ips.return_value = {
            "staticIps": [
                {"name": "other", "ipAddress": "1.1.1.1", "attachedTo": "web-2", "isAttached": True},
                {"name": "sip-web-1", "ipAddress": "2.2.2.2", "attachedTo": "web-1", "isAttached": True},
            ]
        }

        assert lightsail.find_attached_static_ip(client, "web-1") == ("sip-web-1", "2.2.2.2")

    def test_ignores_detached(self, client):
        client.get_static_ips.return_value = {
            "staticIps": [{"name": "sip", "ipAddress": "2.2.2.2", "attachedTo": "web-1", "isAttached": False}]
        }

        assert lightsail.find_attached_static_ip(client, "web-1") == ("", "")

    def test_error_gives_empty(self, client):
        client.get_static_ips.side_effect = client_error("ServiceException", "GetStaticIps")

        assert lightsail.find_attached_static_ip(client, "web-1") == ("", "")


@pytest.mark.unit
class TestWaitStaticIPDetached:
    def test_lookup_error_counts_as_detached(self, client):
        client.get_static_ip.side_effect = client_error()
        assert lightsail.wait_static_ip_detached(client, "sip") is True

    def test_is_attached_false(self, client):
        client.get_static_ip.return_value = {"staticIp": {"isAttached": False, "attachedTo": "web-1"}}
        assert lightsail.wait_static_ip_detached(client, "sip") is True

    def test_empty_attached_to(self, client):
        client.get_static_ip.return_value = {"staticIp": {"attachedTo": ""}}
        assert lightsail.wait_static_ip_detached(client, "sip") is True

    def test_polls_until_detached(self, client, no_sleep):
        client.get_static_ip.side_effect = [
            {"staticIp": {"isAttached": True, "attachedTo": "web-1"}},
            {"staticIp": {"isAttached": True, "attachedTo": "web-1"}},
            {"staticIp": {"isAttached": False}},
        ]

        assert lightsail.wait_static_ip_detached(client, "sip", poll_interval=2.0) is True
        assert client.get_static_ip.call_count == 3
        assert no_sleep.call_args_list == [call(2.0), call(2.0)]

    def test_times_out(self, client):
        client.get_static_ip.return_value = {"staticIp": {"isAttached": True, "attachedTo": "web-1"}}
        assert lightsail.wait_static_ip_detached(client, "sip", timeout=0) is False


def attached(name="sip-old", instance_name="web-1", address="2.2.2.2") -> dict:
    return {"staticIps": [{"name": name, "ipAddress": address, "attachedTo": instance_name, "isAttached": True}]}


@pytest.mark.unit
class TestDeletePreviousStaticIP:
    def test_nothing_attached(self, client):
        assert lightsail.delete_previous_static_ip_for_instance(client, "web-1") == ""
        client.detach_static_ip.assert_not_called()
        client.release_static_ip.assert_not_called()

    def test_detach_release_and_confirm_gone(self, client):
        client.get_static_ips.return_value = attached()
        client.get_static_ip.side_effect = [
            {"staticIp": {"name": "sip-old", "isAttached": False}},
            client_error(),
        ]

        assert lightsail.delete_previous_static_ip_for_instance(client, "web-1") == "sip-old"

        client.detach_static_ip.assert_called_once_with(staticIpName="sip-old")
        client.release_static_ip.assert_called_once_with(staticIpName="sip-old")

    def test_detach_timeout_raises(self, client):
        client.get_static_ips.return_value = attached()
        client.get_static_ip.return_value = {"staticIp": {"isAttached": True, "attachedTo": "web-1"}}

        with pytest.raises(AWSOperationError, match="timed out waiting for old static IP sip-old"):
            lightsail.delete_previous_static_ip_for_instance(client, "web-1", detach_timeout=0)
        client.release_static_ip.assert_not_called()

    def test_release_not_effective_raises(self, client):
        client.get_static_ips.return_value = attached()
        client.get_static_ip.side_effect = client_error()

        with pytest.raises(AWSOperationError, match="still exists after release"):
            lightsail.delete_previous_static_ip_for_instance(client, "web-1", release_timeout=0)

    def test_release_is_retried(self, client):
        client.get_static_ips.return_value = attached()
        client.get_static_ip.side_effect = client_error()
        client.release_static_ip.side_effect = [client_error("OperationFailureException"), {}]

        assert lightsail.delete_previous_static_ip_for_instance(client, "web-1") == "sip-old"
        assert client.release_static_ip.call_count == 2


@pytest.mark.unit
class TestSwapStaticIP:
    def test_rejects_ipv6_only_instance(self, client):
        client.get_instances.return_value = {"instances": [instance("web-1", public_ip="")]}

        with pytest.raises(AWSOperationError, match="no public IPv4"):
            lightsail.swap_static_ip_for_instance(client, "web-1")
        client.allocate_static_ip.assert_not_called()

    def test_swaps_old_for_new(self, client):
        client.get_instances.return_value = {"instances": [instance("Web_1")]}
        client.get_static_ips.return_value = attached(instance_name="Web_1")
        client.get_static_ip.side_effect = [
            {"staticIp": {"isAttached": False}},
            client_error(),
            {"staticIp": {"ipAddress": "3.3.3.3"}},
        ]

        result = lightsail.swap_static_ip_for_instance(client, "Web_1")

        assert result.instance_name == "Web_1"
        assert result.old_static_ip_name == "sip-old"
        assert result.new_static_ip_name.startswith("sip-web1-")
        assert result.new_ip_address == "3.3.3.3"

        client.allocate_static_ip.assert_called_once_with(staticIpName=result.new_static_ip_name)
        client.attach_static_ip.assert_called_once_with(
            staticIpName=result.new_static_ip_name, instanceName="Web_1"
        )
        order = [c[0] for c in client.method_calls if c[0] in (
            "detach_static_ip", "release_static_ip", "allocate_static_ip", "attach_static_ip"
        )]
        assert order == ["detach_static_ip", "release_static_ip", "allocate_static_ip", "attach_static_ip"]

    def test_without_previous_static_ip(self, client):
        client.get_instances.return_value = {"instances": [instance("web-1")]}
        client.get_static_ip.return_value = {"staticIp": {"ipAddress": "4.4.4.4"}}

        result = lightsail.swap_static_ip_for_instance(client, "web-1")

        assert result.old_static_ip_name == ""
        assert result.new_ip_address == "4.4.4.4"
        client.detach_static_ip.assert_not_called()

    def test_old_ip_cleanup_failure_does_not_block(self, client):
        client.get_instances.return_value = {"instances": [instance("web-1")]}
        client.get_static_ips.return_value = attached()
        client.detach_static_ip.side_effect = client_error("OperationFailureException", "DetachStaticIp")
        client.get_static_ip.side_effect = client_error()

        result = lightsail.swap_static_ip_for_instance(client, "web-1")

        assert client.detach_static_ip.call_count == 8
        assert result.old_static_ip_name == ""
        client.allocate_static_ip.assert_called_once()

    def test_attach_failure_raises(self, client):
        client.get_instances.return_value = {"instances": [instance("web-1")]}
        client.attach_static_ip.side_effect = client_error("InvalidInputException", "AttachStaticIp")

        with pytest.raises(AWSOperationError, match="attach new static IP failed"):
            lightsail.swap_static_ip_for_instance(client, "web-1")
        assert client.attach_static_ip.call_count == 8


@pytest.mark.unit
class TestDeleteInstance:
    def test_releases_static_ip_then_deletes(self, client):
        client.get_static_ips.return_value = attached()
        client.get_static_ip.side_effect = [{"staticIp": {"isAttached": False}}, client_error()]

        lightsail.delete_instance_with_static_ip_cleanup(client, "web-1")

        client.release_static_ip.assert_called_once_with(staticIpName="sip-old")
        client.delete_instance.assert_called_once_with(instanceName="web-1")

    def test_deletes_even_if_cleanup_fails(self, client):
        client.get_static_ips.return_value = attached()
        client.detach_static_ip.side_effect = client_error("OperationFailureException", "DetachStaticIp")

        lightsail.delete_instance_with_static_ip_cleanup(client, "web-1")

        client.delete_instance.assert_called_once_with(instanceName="web-1")

    def test_delete_failure_raises(self, client):
        client.delete_instance.side_effect = client_error("OperationFailureException", "DeleteInstance")

        with pytest.raises(AWSOperationError, match="delete instance failed"):
            lightsail.delete_instance_with_static_ip_cleanup(client, "web-1")
        assert client.delete_instance.call_count == 8


@pytest.mark.unit
class TestCatalog:
    def test_list_regions_keeps_available_zones(self, client):
        client.get_regions.return_value = {
            "regions": [
                {
                    "name": "us-east-1",
                    "displayName": "Virginia",
                    "availabilityZones": [
                        {"zoneName": "us-east-1a", "state": "available"},
                        {"zoneName": "us-east-1e", "state": "impaired"},
                    ],
                }
            ]
        }

        regions = lightsail.list_regions(client)

        client.get_regions.assert_called_once_with(includeAvailabilityZones=True)
        assert regions[0].name == "us-east-1"
        assert regions[0].display_name == "Virginia"
        assert regions[0].availability_zones == ["us-east-1a"]

    def test_list_blueprints_only_active_os(self, client):
        client.get_blueprints.return_value = {
            "blueprints": [
                {"blueprintId": "debian_12", "name": "Debian", "group": "debian", "type": "os",
                 "isActive": True, "version": "12.5", "platform": "LINUX_UNIX"},
                {"blueprintId": "wordpress", "type": "app", "isActive": True},
                {"blueprintId": "centos_7", "type": "os", "isActive": False},
            ]
        }

        blueprints = lightsail.list_blueprints(client)

        assert [b.blueprint_id for b in blueprints] == ["debian_12"]
        assert blueprints[0].platform == "LINUX_UNIX"

    def test_list_bundles_sorted_by_price(self, client):
        client.get_bundles.return_value = {
            "bundles": [
                {"bundleId": "small_3_0", "price": 10.0, "cpuCount": 2, "ramSizeInGb": 2.0,
                 "diskSizeInGb": 60, "transferPerMonthInGb": 3072, "isActive": True,
                 "supportedPlatforms": ["LINUX_UNIX"]},
                {"bundleId": "nano_3_0", "price": 3.5, "cpuCount": 2, "ramSizeInGb": 0.5,
                 "diskSizeInGb": 20, "transferPerMonthInGb": 1024, "isActive": True},
                {"bundleId": "old_1_0", "price": 1.0, "isActive": False},
            ]
        }

        bundles = lightsail.list_bundles(client)

        assert [b.bundle_id for b in bundles] == ["nano_3_0", "small_3_0"]
        assert bundles[0].supported_platforms == []
        assert bundles[1].ram_size_in_gb == 2.0

    def test_catalog_failure_raises(self, client):
        client.get_bundles.side_effect = client_error("AccessDeniedException", "GetBundles")

        with pytest.raises(AWSOperationError, match="failed to list bundles"):
            lightsail.list_bundles(client)


@pytest.mark.unit
class TestRootPasswordUserData:
    def test_password_travels_base64_encoded(self):
        password = "p@ss$word`with'quotes"
        script = lightsail.build_root_password_user_data(password)

        assert script.startswith("#!/bin/bash\n")
        assert base64.b64encode(password.encode()).decode() in script
        assert password not in script
        assert "__PASSWORD_B64__" not in script

    def test_enables_root_password_login(self):
        script = lightsail.build_root_password_user_data("pw")

        assert "chpasswd" in script
        assert "PermitRootLogin yes" in script
        assert "PasswordAuthentication yes" in script
