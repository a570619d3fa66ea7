"""HTTP adapter for the RentalGateway port (rentals service)."""

import httpx

from roomshare.domain.roommate.model.value import ApplicationId, RentalId, RentalTerms
from roomshare.domain.roommate.port.rental_gateway import RentalGateway
from roomshare.domain.shared.error import ExternalServiceError


class HttpRentalGateway(RentalGateway):
    """Creates rentals via ``POST /api/rentals``.

    The application id is sent as ``Idempotency-Key`` so a retried confirm
    gets back the rental created by the first attempt.
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def create_rental(self, application_id: ApplicationId, terms: RentalTerms) -> RentalId:
        payload = {
            "roommateApplicationId": str(application_id),
            "monthlyRent": str(terms.monthly_rent),
            "depositPaid": str(terms.deposit_amount),
            "utilityCostPerPerson": str(terms.utility_cost_per_person),
            "currency": terms.currency,
        }
        try:
            response = await self._client.post(
                f"{self._base_url}/api/rentals",
                json=payload,
                headers={"Idempotency-Key": str(application_id)},
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Rental creation failed: {e}") from e
        except ValueError as e:
            raise ExternalServiceError(f"Rentals service returned invalid JSON: {e}") from e

        if not isinstance(body, dict):
            raise ExternalServiceError("Rentals service returned a non-object body")
        data = body["data"] if isinstance(body.get("data"), dict) else body
        rental_id = data.get("id")
        if not rental_id:
            raise ExternalServiceError("Rentals service response has no rental id")
        return RentalId(str(rental_id))
