"""Client management router.

Endpoints:
    GET    /api/clients                           List clients (with services)
    POST   /api/clients                           Create client (+ initial services)
    GET    /api/clients/{id}                      Get client
    PUT    /api/clients/{id}                      Update client
    DELETE /api/clients/{id}                      Archive (deactivate) client
    GET    /api/clients/{id}/services             List services
    POST   /api/clients/{id}/services             Toggle existing or add service
    PUT    /api/clients/{id}/services/{sid}       Update service config/state
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.middleware.exceptions import ResourceNotFoundError
from app.models.client import Client, ClientService
from app.schemas.client import (
    ClientCreate,
    ClientOut,
    ClientUpdate,
    ServiceCreate,
    ServiceOut,
    ServiceUpdate,
)
from app.utils.activity import log_activity

router = APIRouter()


async def _get_client(db: AsyncSession, client_id: str) -> Client:
    result = await db.execute(select(Client).where(Client.id == client_id))
    client = result.scalar_one_or_none()
    if not client:
        raise ResourceNotFoundError("Client", client_id)
    return client


@router.get("", response_model=list[ClientOut])
async def list_clients(
    active: bool | None = None,
    db: AsyncSession = Depends(get_db),
):
    """List clients ordered by name; `active` filters on is_active."""
    query = select(Client)
    if active is not None:
        query = query.where(Client.is_active == active)
    query = query.order_by(Client.name)
    result = await db.execute(query)
    return [ClientOut.model_validate(c) for c in result.scalars().all()]


@router.post("", response_model=ClientOut, status_code=201)
async def create_client(body: ClientCreate, db: AsyncSession = Depends(get_db)):
    data = body.model_dump(exclude={"services"})
    client = Client(**data)
    # Deduplicate while keeping order; (client, service_type) is unique
    client.services = [
        ClientService(service_type=service_type, is_active=True, config={})
        for service_type in dict.fromkeys(body.services)
    ]
    db.add(client)
    await db.flush()

    await log_activity(
        db,
        domain="mlc",
        domain_ref_id=client.id,
        module="clients",
        activity_type="created",
        title=f"Added client '{client.name}'",
        ref_type="client",
        ref_id=client.id,
    )
    return ClientOut.model_validate(client)


@router.get("/{client_id}", response_model=ClientOut)
async def get_client(client_id: str, db: AsyncSession = Depends(get_db)):
    return ClientOut.model_validate(await _get_client(db, client_id))


@router.put("/{client_id}", response_model=ClientOut)
async def update_client(
    client_id: str,
    body: ClientUpdate,
    db: AsyncSession = Depends(get_db),
):
    client = await _get_client(db, client_id)

    updates = body.model_dump(exclude_unset=True)
    for key, value in updates.items():
        setattr(client, key, value)
    await db.flush()

    await log_activity(
        db,
        domain="mlc",
        domain_ref_id=client.id,
        module="clients",
        activity_type="updated",
        title="Updated client",
        ref_type="client",
        ref_id=client.id,
    )
    return ClientOut.model_validate(client)


@router.delete("/{client_id}", response_model=ClientOut)
async def archive_client(client_id: str, db: AsyncSession = Depends(get_db)):
    """Soft-delete: the row stays for time entries and onboarding history."""
    client = await _get_client(db, client_id)
    client.is_active = False
    await db.flush()

    await log_activity(
        db,
        domain="mlc",
        domain_ref_id=client.id,
        module="clients",
        activity_type="archived",
        title="Archived client",
        ref_type="client",
        ref_id=client.id,
    )
    return ClientOut.model_validate(client)


# ── Services ────────────────────────────────────────────────

@router.get("/{client_id}/services", response_model=list[ServiceOut])
async def list_services(client_id: str, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(ClientService)
        .where(ClientService.client_id == client_id)
        .order_by(ClientService.service_type)
    )
    return [ServiceOut.model_validate(s) for s in result.scalars().all()]


@router.post("/{client_id}/services", response_model=ServiceOut, status_code=201)
async def add_service(
    client_id: str,
    body: ServiceCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """Add a service, or flip is_active if the client already has it."""
    await _get_client(db, client_id)

    result = await db.execute(
        select(ClientService).where(
            ClientService.client_id == client_id,
            ClientService.service_type == body.service_type,
        )
    )
    existing = result.scalar_one_or_none()
    if existing:
        existing.is_active = not existing.is_active
        await db.flush()
        response.status_code = status.HTTP_200_OK
        return ServiceOut.model_validate(existing)

    service = ClientService(
        client_id=client_id,
        service_type=body.service_type,
        config=body.config or {},
        is_active=True if body.is_active is None else body.is_active,
    )
    db.add(service)
    await db.flush()
    return ServiceOut.model_validate(service)


@router.put("/{client_id}/services/{service_id}", response_model=ServiceOut)
async def update_service(
    client_id: str,
    service_id: str,
    body: ServiceUpdate,
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(ClientService).where(
            ClientService.id == service_id,
            ClientService.client_id == client_id,
        )
    )
    service = result.scalar_one_or_none()
    if not service:
        raise ResourceNotFoundError("Service", service_id)

    updates = body.model_dump(exclude_unset=True)
    for key, value in updates.items():
        setattr(service, key, value)
    await db.flush()
    return ServiceOut.model_validate(service)
