"""Tests for the container, unit and listing endpoints."""

from __future__ import annotations

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.listings.models import Institution, Listing, PropertyType, Region
from apps.users.models import CustomUser


class ListingAPITestCase(APITestCase):
    def setUp(self) -> None:
        self.owner = CustomUser.objects.create_user(
            email="propietaria@example.com",
            password="StrongPass123",
            username="propietaria",
            user_type=CustomUser.UserType.OWNER,
        )
        self.other_owner = CustomUser.objects.create_user(
            email="vecino@example.com",
            password="StrongPass123",
            username="vecino",
            user_type=CustomUser.UserType.OWNER,
        )
        self.tenant = CustomUser.objects.create_user(
            email="estudiante@example.com",
            password="StrongPass123",
            username="estudiante",
        )
        self.admin = CustomUser.objects.create_user(
            email="moderador@example.com",
            password="StrongPass123",
            username="moderador",
            user_type=CustomUser.UserType.ADMIN,
            is_staff=True,
        )
        department = Region.objects.create(name="Caldas", slug="caldas", kind=Region.Kind.DEPARTMENT)
        self.city = Region.objects.create(name="Manizales", slug="manizales", kind=Region.Kind.CITY, parent=department)
        self.pension = PropertyType.objects.create(slug="pension", name="Pensión")
        PropertyType.objects.create(slug="habitacion", name="Habitación")
        self.university = Institution.objects.create(name="Universidad de Caldas", city=self.city)

    def container_data(self, units: int = 2) -> dict:
        return {
            "title": "Pensión La Francia",
            "description": "A dos cuadras de la universidad",
            "monthly_rent": "2400000",
            "type": self.pension.pk,
            "location": {"street": "Calle 65 # 26-10", "neighborhood": "La Francia", "city": self.city.pk},
            "images": ["https://cdn.example.com/fachada.jpg", {"url": "https://cdn.example.com/sala.jpg"}],
            "institutions": [{"id": self.university.pk, "distance": 200}],
            "services": [{"service_type": "breakfast"}, {"service_type": "wifi"}],
            "rules": [{"rule_type": "visits", "is_allowed": False}],
            "units": [{"title": f"Habitación {index + 1}", "monthly_rent": "750000"} for index in range(units)],
        }

    def create_container(self, units: int = 2) -> dict:
        self.client.force_authenticate(self.owner)
        response = self.client.post(reverse("container-list"), self.container_data(units), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return response.data


class ContainerAPITests(ListingAPITestCase):
    def test_create_container_with_units(self) -> None:
        data = self.create_container(units=2)

        self.assertTrue(data["is_container"])
        self.assertEqual(data["rental_mode"], "by_unit")
        self.assertEqual((data["total_units"], data["available_units"]), (2, 2))
        self.assertEqual([unit["title"] for unit in data["units"]], ["Habitación 1", "Habitación 2"])
        self.assertEqual(data["unit_stats"]["total"], 2)
        self.assertEqual(data["location"]["city"]["name"], "Manizales")
        self.assertEqual([image["is_featured"] for image in data["images"]], [True, False])
        self.assertEqual(data["institutions"][0]["distance"], 200)
        self.assertEqual(len(data["services"]), 2)
        self.assertEqual(data["units"][0]["property_type"]["slug"], "habitacion")

    def test_create_requires_owner(self) -> None:
        self.client.force_authenticate(self.tenant)
        response = self.client.post(reverse("container-list"), self.container_data(), format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, response.data)

        self.client.force_authenticate(None)
        response = self.client.post(reverse("container-list"), self.container_data(), format="json")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED, response.data)
        self.assertEqual(Listing.objects.count(), 0)

    def test_create_with_unknown_institution_creates_nothing(self) -> None:
        payload = self.container_data()
        payload["institutions"] = [987654]
        self.client.force_authenticate(self.owner)

        response = self.client.post(reverse("container-list"), payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["code"], "validation_error")
        self.assertEqual(Listing.objects.count(), 0)

    def test_retrieve_errors(self) -> None:
        data = self.create_container(units=1)

        response = self.client.get(reverse("container-detail", args=[987654]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND, response.data)
        self.assertEqual(response.data["code"], "not_found")

        response = self.client.get(reverse("container-detail", args=[data["units"][0]["id"]]))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["code"], "invalid_state")

    def test_list_shows_own_and_approved_containers(self) -> None:
        data = self.create_container(units=0)

        self.client.force_authenticate(None)
        self.assertEqual(self.client.get(reverse("container-list")).data, [])

        self.client.force_authenticate(self.owner)
        response = self.client.get(reverse("container-list"))
        self.assertEqual([container["id"] for container in response.data], [data["id"]])

    def test_unapproved_container_is_hidden_from_strangers(self) -> None:
        data = self.create_container(units=1)
        unit_id = data["units"][0]["id"]

        for user in (None, self.other_owner):
            self.client.force_authenticate(user)
            for url in (
                reverse("container-detail", args=[data["id"]]),
                reverse("container-units", args=[data["id"]]),
                reverse("unit-detail", args=[unit_id]),
            ):
                response = self.client.get(url)
                self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND, url)

        self.client.force_authenticate(self.admin)
        self.client.put(reverse("container-approve", args=[data["id"]]))
        self.client.force_authenticate(None)
        response = self.client.get(reverse("container-detail", args=[data["id"]]))
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], "approved")

    def test_update_by_other_owner_is_forbidden(self) -> None:
        data = self.create_container(units=0)
        self.client.force_authenticate(self.other_owner)

        response = self.client.patch(reverse("container-detail", args=[data["id"]]), {"title": "Mía"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, response.data)

    def test_partial_update(self) -> None:
        data = self.create_container(units=1)

        response = self.client.patch(
            reverse("container-detail", args=[data["id"]]),
            {"title": "Pensión La Francia II", "services": [{"service_type": "laundry", "is_included": False}]},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["title"], "Pensión La Francia II")
        self.assertEqual([service["service_type"] for service in response.data["services"]], ["laundry"])
        self.assertEqual(len(response.data["images"]), 2)

    def test_update_cannot_carry_units(self) -> None:
        data = self.create_container(units=1)

        response = self.client.patch(
            reverse("container-detail", args=[data["id"]]),
            {"units": [{"title": "Colada"}]},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)

    def test_delete_container_with_units_is_rejected(self) -> None:
        data = self.create_container(units=1)

        response = self.client.delete(reverse("container-detail", args=[data["id"]]))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["code"], "invalid_state")

        response = self.client.delete(reverse("unit-detail", args=[data["units"][0]["id"]]))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        response = self.client.delete(reverse("container-detail", args=[data["id"]]))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Listing.objects.exists())


class OccupancyAPITests(ListingAPITestCase):
    def test_rent_complete_conflicts_with_rented_unit(self) -> None:
        data = self.create_container(units=2)
        first = data["units"][0]["id"]

        response = self.client.patch(reverse("unit-rental-status", args=[first]), {"is_rented": True}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertTrue(response.data["is_rented"])
        self.assertEqual(response.data["container"]["available_units"], 1)

        response = self.client.post(reverse("container-rent-complete", args=[data["id"]]))
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["code"], "conflict")
        container = Listing.objects.get(pk=data["id"])
        self.assertEqual((container.rental_mode, container.available_units), ("by_unit", 1))

    def test_rent_complete_and_back(self) -> None:
        data = self.create_container(units=2)

        response = self.client.post(reverse("container-rent-complete", args=[data["id"]]))
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["rental_mode"], "complete")
        self.assertEqual(response.data["available_units"], 0)
        self.assertTrue(all(unit["is_rented"] for unit in response.data["units"]))

        response = self.client.patch(
            reverse("unit-rental-status", args=[data["units"][0]["id"]]), {"is_rented": False}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)

        response = self.client.post(reverse("container-change-mode", args=[data["id"]]), {"mode": "by_unit"},
                                    format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["rental_mode"], "by_unit")
        self.assertEqual(response.data["available_units"], 2)

    def test_change_mode_validates_mode(self) -> None:
        data = self.create_container(units=1)

        response = self.client.post(reverse("container-change-mode", args=[data["id"]]), {"mode": "weekly"},
                                    format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)

    def test_rental_status_on_container_is_rejected(self) -> None:
        data = self.create_container(units=0)

        response = self.client.patch(reverse("unit-rental-status", args=[data["id"]]), {"is_rented": True},
                                     format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["code"], "invalid_state")


class UnitAPITests(ListingAPITestCase):
    def test_add_and_list_units(self) -> None:
        data = self.create_container(units=1)

        response = self.client.post(
            reverse("container-units", args=[data["id"]]),
            {"title": "Habitación con balcón", "monthly_rent": "900000", "room_type": "individual"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["parent_id"], data["id"])

        self.client.patch(reverse("unit-rental-status", args=[response.data["id"]]), {"is_rented": True},
                          format="json")
        response = self.client.get(reverse("container-units", args=[data["id"]]), {"is_rented": "false"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([unit["id"] for unit in response.data], [data["units"][0]["id"]])

        container = Listing.objects.get(pk=data["id"])
        self.assertEqual((container.total_units, container.available_units), (2, 1))

    def test_invalid_unit_filter_is_rejected(self) -> None:
        data = self.create_container(units=2)

        response = self.client.get(reverse("container-units", args=[data["id"]]), {"status": "bogus"})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertIn("status", response.data)

    def test_add_unit_to_missing_container(self) -> None:
        self.client.force_authenticate(self.owner)

        response = self.client.post(reverse("container-units", args=[987654]), {"title": "Huérfana"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND, response.data)

    def test_unit_detail_includes_container(self) -> None:
        data = self.create_container(units=1)
        unit_id = data["units"][0]["id"]

        response = self.client.get(reverse("unit-detail", args=[unit_id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["container"]["id"], data["id"])
        self.assertEqual(response.data["container"]["total_units"], 1)

    def test_update_unit(self) -> None:
        data = self.create_container(units=1)
        unit_id = data["units"][0]["id"]

        response = self.client.patch(reverse("unit-detail", args=[unit_id]), {"beds_in_room": 2}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["beds_in_room"], 2)

    def test_review_flow(self) -> None:
        data = self.create_container(units=2)
        first, second = (unit["id"] for unit in data["units"])

        response = self.client.put(reverse("unit-approve", args=[first]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.get(reverse("container-pending"))
        self.assertEqual([container["id"] for container in response.data], [data["id"]])

        response = self.client.put(reverse("unit-reject", args=[second]), {"reason": "Faltan fotos"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], "rejected")

        response = self.client.put(reverse("container-approve", args=[data["id"]]))
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], "approved")
        self.assertEqual(response.data["unit_stats"]["approved"], 1)
        self.assertEqual(response.data["unit_stats"]["rejected"], 1)

        response = self.client.put(reverse("unit-approve", args=[second]))
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(self.client.get(reverse("container-pending")).data, [])


class AdminCreateContainerAPITests(ListingAPITestCase):
    def admin_create(self, target_owner: int):
        payload = self.container_data(units=1)
        payload["target_owner"] = target_owner
        return self.client.post(reverse("container-admin-create"), payload, format="json")

    def test_admin_creates_container_for_owner(self) -> None:
        self.client.force_authenticate(self.admin)

        response = self.admin_create(self.owner.pk)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["total_units"], 1)
        container = Listing.objects.get(pk=response.data["id"])
        self.assertEqual(container.owner, self.owner)
        self.assertEqual(set(Listing.objects.values_list("owner_id", flat=True)), {self.owner.pk})

    def test_only_admins_may_create_for_others(self) -> None:
        self.client.force_authenticate(self.other_owner)

        response = self.admin_create(self.owner.pk)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, response.data)
        self.assertFalse(Listing.objects.exists())

    def test_target_owner_must_exist_and_own_listings(self) -> None:
        self.client.force_authenticate(self.admin)

        response = self.admin_create(987654)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND, response.data)
        self.assertEqual(response.data["code"], "not_found")

        response = self.admin_create(self.tenant.pk)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["code"], "validation_error")

        response = self.client.post(reverse("container-admin-create"), self.container_data(), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertFalse(Listing.objects.exists())


class StandaloneListingAPITests(ListingAPITestCase):
    def test_create_and_update_listing(self) -> None:
        self.client.force_authenticate(self.owner)
        response = self.client.post(
            reverse("listing-list"),
            {
                "title": "Apartaestudio Palermo",
                "monthly_rent": "1300000",
                "type_name": "pension",
                "location": {"street": "Carrera 23 # 70-15", "neighborhood": "Palermo", "city": self.city.pk},
                "contact": {"contact_name": "Gloria", "contact_phone": "+573101112233"},
                "features": {"is_furnished": True},
                "institutions": [self.university.pk],
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        listing_id = response.data["id"]
        self.assertFalse(response.data["is_container"])
        self.assertIsNone(response.data["parent"])
        self.assertEqual(response.data["contact"]["contact_name"], "Gloria")
        self.assertIsNone(response.data["institutions"][0]["distance"])

        response = self.client.patch(
            reverse("listing-detail", args=[listing_id]),
            {"images": ["https://cdn.example.com/a.jpg"], "institutions": []},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["institutions"], [])
        self.assertEqual(response.data["images"][0]["order_position"], 0)
        self.assertEqual(response.data["contact"]["contact_name"], "Gloria")

    def test_listing_shares_location_with_container(self) -> None:
        data = self.create_container(units=0)

        response = self.client.post(
            reverse("listing-list"),
            {
                "title": "Local comercial",
                "type": self.pension.pk,
                "location": {"street": " Calle 65 # 26-10 ", "neighborhood": "La Francia", "city": self.city.pk},
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["location"]["id"], data["location"]["id"])

    def test_missing_listing(self) -> None:
        response = self.client.get(reverse("listing-detail", args=[987654]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND, response.data)

    def test_pending_listing_is_hidden_from_strangers(self) -> None:
        self.client.force_authenticate(self.owner)
        response = self.client.post(
            reverse("listing-list"),
            {
                "title": "Habitación Chipre",
                "type": self.pension.pk,
                "location": {"street": "Calle 12 # 8-20", "neighborhood": "Chipre", "city": self.city.pk},
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        url = reverse("listing-detail", args=[response.data["id"]])

        self.assertEqual(self.client.get(url).status_code, status.HTTP_200_OK)
        self.client.force_authenticate(None)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_404_NOT_FOUND)
        self.client.force_authenticate(self.admin)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_200_OK)
