import threading
from datetime import date, datetime, time
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse

from . import config, db, reports, schemas
from .deps import get_correlation_id, get_system
from .exceptions import ValidationError
from .logs import SERVICE_NAME, configure_logging, correlation_id_var, logger
from .metrics import MetricsMiddleware, metrics_endpoint
from .seed import seed_default_menu
from .system import PizzeriaSystem

# ----- Logging -----
configure_logging()

# ----- Init -----
db.init_db()
app = FastAPI(title=SERVICE_NAME, version="v1")
app.add_middleware(MetricsMiddleware, service_name=SERVICE_NAME)

app.state.system = PizzeriaSystem(db.SessionLocal())
app.state.lock = threading.Lock()
if config.SEED_MENU:
    seed_default_menu(app.state.system.catalog)
    app.state.system.session.commit()


# ----- Errors -----
@app.exception_handler(ValidationError)
def validation_error_handler(request: Request, exc: ValidationError):
    cid = request.headers.get("X-Correlation-Id") or correlation_id_var.get()
    logger.info(f"Validation error: {exc}")
    return JSONResponse(
        status_code=400,
        content={"detail": {"code": "VALIDATION_ERROR", "message": str(exc), "correlationId": cid}},
    )


def not_found(entity: str, cid: str):
    return HTTPException(404, {"code": f"{entity}_NOT_FOUND", "correlationId": cid})


# ----- Infra Endpoints -----
@app.get("/health")
def health():
    return {"status": "ok", "service": SERVICE_NAME}


@app.get("/metrics")
def metrics():
    return metrics_endpoint()


# ----- API: Menu -----

@app.get("/v1/pizzas", response_model=List[schemas.PizzaRead])
def list_pizzas(system: PizzeriaSystem = Depends(get_system)):
    return system.catalog.pizzas()


@app.post("/v1/pizzas", response_model=schemas.PizzaRead, status_code=201)
def add_pizza(payload: schemas.PizzaCreate, system: PizzeriaSystem = Depends(get_system)):
    return system.catalog.add_pizza(
        payload.name,
        payload.ingredients,
        payload.size,
        payload.base_price,
        payload.cooking_time,
    )


@app.get("/v1/pizzas/{pizza_id}", response_model=schemas.PizzaRead)
def get_pizza(
    pizza_id: int,
    system: PizzeriaSystem = Depends(get_system),
    cid: str = Depends(get_correlation_id),
):
    pizza = system.catalog.find_by_id(pizza_id)
    if not pizza:
        raise not_found("PIZZA", cid)
    return pizza


@app.delete("/v1/pizzas/{pizza_id}", status_code=204)
def remove_pizza(
    pizza_id: int,
    system: PizzeriaSystem = Depends(get_system),
    cid: str = Depends(get_correlation_id),
):
    if not system.catalog.remove_pizza(pizza_id):
        raise not_found("PIZZA", cid)
    return Response(status_code=204)


@app.post("/v1/pizzas/{pizza_id}/ingredients", response_model=schemas.PizzaRead)
def add_ingredient(
    pizza_id: int,
    payload: schemas.IngredientRequest,
    system: PizzeriaSystem = Depends(get_system),
    cid: str = Depends(get_correlation_id),
):
    pizza = system.catalog.find_by_id(pizza_id)
    if not pizza:
        raise not_found("PIZZA", cid)
    pizza.add_ingredient(payload.ingredient)
    return pizza


@app.delete("/v1/pizzas/{pizza_id}/ingredients/{ingredient}", response_model=schemas.PizzaRead)
def remove_ingredient(
    pizza_id: int,
    ingredient: str,
    system: PizzeriaSystem = Depends(get_system),
    cid: str = Depends(get_correlation_id),
):
    pizza = system.catalog.find_by_id(pizza_id)
    if not pizza:
        raise not_found("PIZZA", cid)
    pizza.remove_ingredient(ingredient)
    return pizza


# ----- API: Customers -----

@app.get("/v1/customers", response_model=List[schemas.CustomerRead])
def list_customers(system: PizzeriaSystem = Depends(get_system)):
    return system.customers.customers()


@app.post("/v1/customers", response_model=schemas.CustomerRead, status_code=201)
def register_customer(payload: schemas.CustomerCreate, system: PizzeriaSystem = Depends(get_system)):
    return system.customers.register(payload.name, payload.phone, payload.email, payload.address)


@app.get("/v1/customers/by-phone/{phone}", response_model=schemas.CustomerRead)
def find_customer_by_phone(
    phone: str,
    system: PizzeriaSystem = Depends(get_system),
    cid: str = Depends(get_correlation_id),
):
    customer = system.customers.find_by_phone(phone)
    if not customer:
        raise not_found("CUSTOMER", cid)
    return customer


@app.get("/v1/customers/{customer_id}", response_model=schemas.CustomerRead)
def get_customer(
    customer_id: int,
    system: PizzeriaSystem = Depends(get_system),
    cid: str = Depends(get_correlation_id),
):
    customer = system.customers.find_by_id(customer_id)
    if not customer:
        raise not_found("CUSTOMER", cid)
    return customer


@app.patch("/v1/customers/{customer_id}", response_model=schemas.CustomerRead)
def update_customer(
    customer_id: int,
    payload: schemas.CustomerUpdate,
    system: PizzeriaSystem = Depends(get_system),
    cid: str = Depends(get_correlation_id),
):
    customer = system.customers.update(customer_id, **payload.model_dump())
    if not customer:
        raise not_found("CUSTOMER", cid)
    return customer


@app.get("/v1/customers/{customer_id}/orders", response_model=List[schemas.OrderRead])
def customer_orders(
    customer_id: int,
    system: PizzeriaSystem = Depends(get_system),
    cid: str = Depends(get_correlation_id),
):
    if not system.customers.find_by_id(customer_id):
        raise not_found("CUSTOMER", cid)
    return system.orders.for_customer(customer_id)


# ----- API: Orders -----

@app.get("/v1/orders", response_model=List[schemas.OrderRead])
def list_orders(system: PizzeriaSystem = Depends(get_system)):
    return system.orders.orders()


@app.post("/v1/orders", response_model=schemas.OrderRead, status_code=201)
def create_order(
    payload: schemas.CreateOrderRequest,
    system: PizzeriaSystem = Depends(get_system),
    cid: str = Depends(get_correlation_id),
):
    """
    Create an empty order.

    The customer is either an existing ``customer_id`` or inline details;
    inline details are matched by phone and registered when unknown.
    """
    if payload.customer_id is not None:
        customer = system.customers.find_by_id(payload.customer_id)
        if not customer:
            raise not_found("CUSTOMER", cid)
    elif payload.customer is not None:
        c = payload.customer
        customer = system.customers.find_by_phone(c.phone) or system.customers.register(
            c.name, c.phone, c.email, c.address
        )
    else:
        raise ValidationError("customer_id or customer is required")

    return system.orders.create(customer)


@app.get("/v1/orders/{order_id}", response_model=schemas.OrderRead)
def get_order(
    order_id: int,
    system: PizzeriaSystem = Depends(get_system),
    cid: str = Depends(get_correlation_id),
):
    order = system.orders.find_by_id(order_id)
    if not order:
        raise not_found("ORDER", cid)
    return order


@app.post("/v1/orders/{order_id}/items", response_model=schemas.OrderRead, status_code=201)
def add_order_item(
    order_id: int,
    payload: schemas.OrderItemRequest,
    system: PizzeriaSystem = Depends(get_system),
    cid: str = Depends(get_correlation_id),
):
    order = system.orders.find_by_id(order_id)
    if not order:
        raise not_found("ORDER", cid)
    if system.add_item(order_id, payload.pizza_id, payload.quantity) is None:
        raise not_found("PIZZA", cid)
    return order


@app.delete("/v1/orders/{order_id}/items/{item_id}", response_model=schemas.OrderRead)
def remove_order_item(
    order_id: int,
    item_id: int,
    system: PizzeriaSystem = Depends(get_system),
    cid: str = Depends(get_correlation_id),
):
    order = system.orders.find_by_id(order_id)
    if not order:
        raise not_found("ORDER", cid)
    item = next((i for i in order.items if i.id == item_id), None)
    if item is None:
        raise not_found("ORDER_ITEM", cid)
    order.remove_item(item)
    system.session.flush()
    return order


@app.post("/v1/orders/{order_id}/process", response_model=schemas.ProcessOrderResponse)
def process_order(
    order_id: int,
    payload: schemas.ProcessOrderRequest,
    system: PizzeriaSystem = Depends(get_system),
    cid: str = Depends(get_correlation_id),
):
    order = system.orders.find_by_id(order_id)
    if not order:
        raise not_found("ORDER", cid)

    processed = system.process_order(order_id, payload.payment_method)
    logger.info(f"Order {order_id} processed={processed}")
    return schemas.ProcessOrderResponse(
        processed=processed,
        order=schemas.OrderRead.model_validate(order),
    )


@app.patch("/v1/orders/{order_id}/status", response_model=schemas.OrderRead)
def update_order_status(
    order_id: int,
    payload: schemas.OrderStatusUpdate,
    system: PizzeriaSystem = Depends(get_system),
    cid: str = Depends(get_correlation_id),
):
    if not system.update_order_status(order_id, payload.status):
        raise not_found("ORDER", cid)
    return system.orders.find_by_id(order_id)


# ----- API: Payments -----

@app.get("/v1/payments", response_model=List[schemas.PaymentRead])
def list_payments(order_id: Optional[int] = None, system: PizzeriaSystem = Depends(get_system)):
    if order_id is not None:
        return system.payments.for_order(order_id)
    return system.payments.payments()


@app.post("/v1/payments/{payment_id}/refund", response_model=schemas.RefundResponse)
def refund_payment(
    payment_id: int,
    system: PizzeriaSystem = Depends(get_system),
    cid: str = Depends(get_correlation_id),
):
    payment = system.payments.find_by_id(payment_id)
    if not payment:
        raise not_found("PAYMENT", cid)
    refunded = system.payments.refund(payment)
    return schemas.RefundResponse(refunded=refunded, payment=schemas.PaymentRead.model_validate(payment))


# ----- API: Deliveries -----

@app.get("/v1/deliveries", response_model=List[schemas.DeliveryRead])
def list_deliveries(active: bool = False, system: PizzeriaSystem = Depends(get_system)):
    if active:
        return system.dispatcher.active()
    return system.dispatcher.deliveries()


@app.post("/v1/deliveries/{delivery_id}/courier", response_model=schemas.DeliveryRead)
def assign_courier(
    delivery_id: int,
    payload: schemas.CourierAssignRequest,
    system: PizzeriaSystem = Depends(get_system),
    cid: str = Depends(get_correlation_id),
):
    if not system.assign_courier(delivery_id, payload.courier):
        raise not_found("DELIVERY", cid)
    return system.dispatcher.find_by_id(delivery_id)


@app.patch("/v1/deliveries/{delivery_id}/status", response_model=schemas.DeliveryRead)
def update_delivery_status(
    delivery_id: int,
    payload: schemas.DeliveryStatusUpdate,
    system: PizzeriaSystem = Depends(get_system),
    cid: str = Depends(get_correlation_id),
):
    if not system.update_delivery_status(delivery_id, payload.status):
        raise not_found("DELIVERY", cid)
    return system.dispatcher.find_by_id(delivery_id)


# ----- API: Reports -----

@app.get("/v1/reports/sales", response_model=schemas.SalesReport)
def sales_report(start: date, end: date, system: PizzeriaSystem = Depends(get_system)):
    # both dates inclusive
    return reports.sales_report(
        system.session,
        datetime.combine(start, time.min),
        datetime.combine(end, time.max),
    )


@app.get("/v1/reports/popular-pizzas", response_model=List[schemas.PizzaPopularity])
def popular_pizzas(limit: int = Query(10, ge=1), system: PizzeriaSystem = Depends(get_system)):
    return reports.popular_pizzas(system.session, limit=limit)


@app.get("/v1/reports/stats", response_model=schemas.SystemStats)
def system_stats(system: PizzeriaSystem = Depends(get_system)):
    return reports.system_stats(system.session)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
