import asyncio
import logging
from dataclasses import asdict
from typing import List, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from pymongo.errors import PyMongoError

import billing
import catalog
import orders
from activity import ActivityLog
from auth import Session, authenticate, authenticate_websocket, register, request_password_reset, sign_in
from config import ADMIN_EMAILS, CORS_ORIGINS, LOG_LEVEL, PORT
from database import get_database
from errors import RecordNotFound, ValidationFailed
from invoice import render_invoice
from migration import MIGRATIONS
from reports import recent_activity, summarize
from repository import OwnerScope
from schemas import (
    BillGenerateRequest,
    BillRecord,
    BillStatusUpdate,
    ClothTypeIn,
    ClothTypeRecord,
    CustomerIn,
    CustomerRecord,
    LoginBody,
    OrderIn,
    OrderRecord,
    PasswordResetRequest,
    RegisterRequest,
    ShopRecord,
    ShopUpdate,
    TimeRange,
)
from shop import get_or_create_shop, update_shop

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Laundry Shop Billing API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----- Error handling -----

@app.exception_handler(ValidationFailed)
def validation_failed(request: Request, exc: ValidationFailed):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(RecordNotFound)
def record_not_found(request: Request, exc: RecordNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(PyMongoError)
def database_error(request: Request, exc: PyMongoError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Database operation failed"})


# ----- Dependencies -----

def get_scope(database=Depends(get_database), session: Session = Depends(authenticate)) -> OwnerScope:
    return OwnerScope(database, session)


def get_activity_log(background_tasks: BackgroundTasks, scope: OwnerScope = Depends(get_scope)) -> ActivityLog:
    log = ActivityLog(scope.activities)
    background_tasks.add_task(log.flush)
    return log


# ----- Auth -----

@app.post("/api/auth/register", response_model=dict)
def register_owner(payload: RegisterRequest, database=Depends(get_database)):
    session = register(database, payload)
    return {"email": session.owner_email, "owner_name": session.owner_name}


@app.post("/api/auth/login", response_model=dict)
def login(body: LoginBody, database=Depends(get_database)):
    session = sign_in(database, body.email, body.password)
    if session is None:
        raise HTTPException(status_code=401, detail="Incorrect email or password")
    return {"email": session.owner_email, "owner_name": session.owner_name}


@app.post("/api/auth/forgot-password", response_model=dict)
def forgot_password(body: PasswordResetRequest, database=Depends(get_database)):
    request_password_reset(database, body.email)
    return {"message": "A password reset email has been sent."}


# ----- Customers -----

@app.get("/api/customers", response_model=List[CustomerRecord])
def list_customers(q: Optional[str] = None, scope: OwnerScope = Depends(get_scope)):
    return orders.list_customers(scope, q)


@app.post("/api/customers", response_model=CustomerRecord)
def add_customer(payload: CustomerIn, scope: OwnerScope = Depends(get_scope), activity: ActivityLog = Depends(get_activity_log)):
    return orders.create_customer(scope, payload, activity)


@app.get("/api/customers/{customer_id}", response_model=dict)
def customer_detail(customer_id: str, scope: OwnerScope = Depends(get_scope)):
    customer = orders.get_customer(scope, customer_id)
    return {"customer": customer, "orders": orders.list_orders(scope, customer_id=customer_id)}


@app.put("/api/customers/{customer_id}", response_model=CustomerRecord)
def edit_customer(customer_id: str, payload: CustomerIn, scope: OwnerScope = Depends(get_scope), activity: ActivityLog = Depends(get_activity_log)):
    return orders.update_customer(scope, customer_id, payload, activity)


@app.delete("/api/customers/{customer_id}", response_model=dict)
def remove_customer(customer_id: str, scope: OwnerScope = Depends(get_scope), activity: ActivityLog = Depends(get_activity_log)):
    orders.delete_customer(scope, customer_id, activity)
    return {"deleted": True}


# ----- Cloth types -----

@app.get("/api/cloth-types", response_model=List[ClothTypeRecord])
def list_cloth_types(q: Optional[str] = None, scope: OwnerScope = Depends(get_scope)):
    return catalog.list_cloth_types(scope, q)


@app.post("/api/cloth-types", response_model=ClothTypeRecord)
def add_cloth_type(payload: ClothTypeIn, scope: OwnerScope = Depends(get_scope), activity: ActivityLog = Depends(get_activity_log)):
    return catalog.create_cloth_type(scope, payload, activity)


@app.get("/api/cloth-types/{cloth_type_id}", response_model=ClothTypeRecord)
def cloth_type_detail(cloth_type_id: str, scope: OwnerScope = Depends(get_scope)):
    return catalog.get_cloth_type(scope, cloth_type_id)


@app.put("/api/cloth-types/{cloth_type_id}", response_model=ClothTypeRecord)
def edit_cloth_type(cloth_type_id: str, payload: ClothTypeIn, scope: OwnerScope = Depends(get_scope), activity: ActivityLog = Depends(get_activity_log)):
    return catalog.update_cloth_type(scope, cloth_type_id, payload, activity)


@app.delete("/api/cloth-types/{cloth_type_id}", response_model=dict)
def remove_cloth_type(cloth_type_id: str, scope: OwnerScope = Depends(get_scope), activity: ActivityLog = Depends(get_activity_log)):
    catalog.delete_cloth_type(scope, cloth_type_id, activity)
    return {"deleted": True}


@app.websocket("/ws/cloth-types")
async def cloth_types_feed(websocket: WebSocket, database=Depends(get_database)):
    session = await run_in_threadpool(authenticate_websocket, websocket, database)
    if session is None:
        await websocket.close(code=1008)
        return
    await websocket.accept()
    scope = OwnerScope(database, session)

    loop = asyncio.get_running_loop()
    changed: asyncio.Queue = asyncio.Queue()
    unsubscribe = catalog.catalog_feed.subscribe(
        session.owner_email, lambda: loop.call_soon_threadsafe(changed.put_nowait, True)
    )
    receiver = asyncio.ensure_future(websocket.receive())
    try:
        while True:
            records = await run_in_threadpool(catalog.list_cloth_types, scope)
            await websocket.send_json([r.model_dump(mode="json") for r in records])
            waiter = asyncio.ensure_future(changed.get())
            done, _ = await asyncio.wait({receiver, waiter}, return_when=asyncio.FIRST_COMPLETED)
            if receiver in done:
                waiter.cancel()
                if receiver.result()["type"] == "websocket.disconnect":
                    break
                # Any client message asks for a fresh snapshot.
                receiver = asyncio.ensure_future(websocket.receive())
    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe()
        receiver.cancel()


# ----- Orders -----

@app.get("/api/orders", response_model=List[dict])
def list_orders(q: Optional[str] = None, customer_id: Optional[str] = None, scope: OwnerScope = Depends(get_scope)):
    return orders.list_orders(scope, q, customer_id)


@app.post("/api/orders", response_model=OrderRecord)
def add_order(payload: OrderIn, scope: OwnerScope = Depends(get_scope), activity: ActivityLog = Depends(get_activity_log)):
    return orders.create_order(scope, payload, activity)


@app.get("/api/orders/{order_id}", response_model=dict)
def order_detail(order_id: str, scope: OwnerScope = Depends(get_scope)):
    return orders.order_details(scope, order_id)


@app.put("/api/orders/{order_id}", response_model=OrderRecord)
def edit_order(order_id: str, payload: OrderIn, scope: OwnerScope = Depends(get_scope), activity: ActivityLog = Depends(get_activity_log)):
    return orders.update_order(scope, order_id, payload, activity)


@app.delete("/api/orders/{order_id}", response_model=dict)
def remove_order(order_id: str, scope: OwnerScope = Depends(get_scope), activity: ActivityLog = Depends(get_activity_log)):
    orders.delete_order(scope, order_id, activity)
    return {"deleted": True}


# ----- Bills -----

@app.get("/api/bills/range", response_model=dict)
def bill_range(scope: OwnerScope = Depends(get_scope)):
    start, end = billing.default_bill_range(scope)
    return {"start_date": start, "end_date": end}


@app.post("/api/bills/generate", response_model=dict)
def generate_bill(payload: BillGenerateRequest, scope: OwnerScope = Depends(get_scope), activity: ActivityLog = Depends(get_activity_log)):
    bill = billing.generate_bill(scope, payload.customer_id, payload.start_date, payload.end_date, activity)
    if bill is None:
        return {"created": False, "message": billing.NO_ORDERS_FOUND, "bill": None}
    return {"created": True, "message": "Bill generated successfully!", "bill": bill}


@app.get("/api/bills", response_model=dict)
def list_bills(customer_id: Optional[str] = None, after: Optional[str] = None, scope: OwnerScope = Depends(get_scope)):
    return billing.list_bills(scope, customer_id=customer_id, after=after)


@app.get("/api/bills/{bill_id}", response_model=BillRecord)
def bill_detail(bill_id: str, scope: OwnerScope = Depends(get_scope)):
    return billing.get_bill(scope, bill_id)


@app.patch("/api/bills/{bill_id}/status", response_model=BillRecord)
def change_bill_status(bill_id: str, body: BillStatusUpdate, scope: OwnerScope = Depends(get_scope), activity: ActivityLog = Depends(get_activity_log)):
    return billing.set_bill_status(scope, bill_id, body.status, activity)


@app.post("/api/bills/{bill_id}/status/next", response_model=BillRecord)
def advance_bill_status(bill_id: str, scope: OwnerScope = Depends(get_scope), activity: ActivityLog = Depends(get_activity_log)):
    return billing.cycle_bill_status(scope, bill_id, activity)


@app.delete("/api/bills/{bill_id}", response_model=dict)
def remove_bill(bill_id: str, scope: OwnerScope = Depends(get_scope), activity: ActivityLog = Depends(get_activity_log)):
    billing.delete_bill(scope, bill_id, activity)
    return {"deleted": True}


@app.get("/api/bills/{bill_id}/invoice", response_model=dict)
def bill_invoice(bill_id: str, scope: OwnerScope = Depends(get_scope)):
    return asdict(render_invoice(scope, bill_id))


@app.get("/api/bills/{bill_id}/invoice.html", response_class=HTMLResponse)
def bill_invoice_html(bill_id: str, scope: OwnerScope = Depends(get_scope)):
    document = render_invoice(scope, bill_id)
    return HTMLResponse(content=document.html, headers={"X-Invoice-File-Name": document.file_name})


# ----- Shop & dashboard -----

@app.get("/api/shop", response_model=ShopRecord)
def shop_profile(scope: OwnerScope = Depends(get_scope)):
    return get_or_create_shop(scope)


@app.put("/api/shop", response_model=ShopRecord)
def edit_shop_profile(changes: ShopUpdate, scope: OwnerScope = Depends(get_scope)):
    return update_shop(scope, changes)


@app.get("/api/dashboard/summary", response_model=dict)
def dashboard_summary(time_range: TimeRange = Query("Month", alias="range"), scope: OwnerScope = Depends(get_scope)):
    return summarize(scope, time_range)


@app.get("/api/activities", response_model=list)
def activities(limit: int = 5, scope: OwnerScope = Depends(get_scope)):
    return recent_activity(scope, limit)


# ----- Admin -----

@app.post("/api/admin/migrations/{name}", response_model=dict)
def run_migration(name: str, database=Depends(get_database), session: Session = Depends(authenticate)):
    # Migrations rewrite every owner's documents.
    if session.owner_email not in ADMIN_EMAILS:
        raise HTTPException(status_code=403, detail="Not allowed to run migrations")
    migrate = MIGRATIONS.get(name)
    if migrate is None:
        raise HTTPException(status_code=404, detail=f"Unknown migration: {name}")
    return {"migration": name, "updated": migrate(database)}


# ----- Misc & Test -----

@app.get("/")
def read_root():
    return {"message": "Laundry Shop Billing API"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
    }
    try:
        database = get_database()
        response["database"] = "✅ Connected"
        response["collections"] = database.list_collection_names()
    except HTTPException:
        response["database"] = "❌ Not Configured"
    except PyMongoError as e:
        response["database"] = f"Error: {str(e)[:80]}"
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
