# gophermart

A loyalty points service. Registered users upload order numbers. The service
asks an external accrual system how many points each order earned and credits
them to the user's balance. Users can then spend points by withdrawing them
against order numbers.

Order numbers are checked with the Luhn algorithm (`gophermart.luhn.validate`).
A number that is empty, contains anything but digits or fails the check is
rejected before anything is stored.

## Installation

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## Running the server

```
gophermart -d gophermart.db -s secret
```

Options:

| Flag | Environment variable     | Default          | Meaning                                  |
|------|--------------------------|------------------|------------------------------------------|
| `-a` | `RUN_ADDRESS`            | `localhost:8081` | `host:port` the HTTP server listens on   |
| `-r` | `ACCRUAL_SYSTEM_ADDRESS` | `localhost:8080` | Address of the accrual system            |
| `-d` | `DATABASE_URI`           | *(none)*         | Database DSN, required                   |
| `-l` | `DEBUG`                  | off              | Enable debug logging                     |
| `-s` | `JWT_SECRET`             | empty            | Secret used to sign access tokens        |
| `-t` | `RATE_LIMITER`           | `10`             | Number of concurrent accrual workers     |

A non-empty environment variable takes precedence over the flag. `DEBUG`
accepts `1`, `t`, `true`, `0`, `f`, `false` and their capitalised forms;
`RATE_LIMITER` must be an integer. Starting without a database DSN, with a
malformed variable, or with stray positional arguments prints the error and a
usage summary to standard error and exits with status 1. An empty host in
`-a` (such as `:8081`) listens on every interface.

On startup the database schema is created or upgraded, the accrual workers
are started and the application is served with Flask's built-in threaded
server. Logs go to standard output.

An accrual address without a scheme gets `http://` in front of it; an address
that is only a port, such as `:8080`, is taken to mean `http://localhost:8080`.

### Database DSN

The data is kept in SQLite. The DSN may be:

- a file path, such as `gophermart.db`,
- `sqlite:///path/to/gophermart.db`,
- an SQLite URI starting with `file:`.

Every operation opens its own connection, so the data must live in a file; a
private in-memory database (`sqlite://`) would not be shared between them.
Other schemes, such as `postgres://`, are rejected.

## HTTP API

Requests that need authentication carry `Authorization: Bearer token`, where
the token is the one returned at registration or login. Tokens are signed
with the configured secret and are valid for 24 hours. A missing or invalid
token is answered with `401` and a JSON object holding an `error` message.

| Method | Path                          | Auth | Purpose                              |
|--------|-------------------------------|------|--------------------------------------|
| POST   | `/api/user/register`          | no   | Create an account, returns a token   |
| POST   | `/api/user/login`             | no   | Log in, returns a token              |
| POST   | `/api/user/orders`            | yes  | Upload an order number (plain text)  |
| GET    | `/api/user/orders`            | yes  | List the user's orders, newest first |
| GET    | `/api/user/balance`           | yes  | Current points and total withdrawn   |
| POST   | `/api/user/balance/withdraw`  | yes  | Spend points against an order number |
| GET    | `/api/user/withdrawals`       | yes  | List past withdrawals                |

Register and login take a JSON body with non-empty `login` and `password`
strings (`400` otherwise). On success the token is returned in the
`Authorization` response header as well as in the body. Registering a name
that is taken answers `409`; a failed login answers `401`.

Uploading an order answers:

- `202` the order was accepted for processing,
- `200` the same user already uploaded it,
- `409` another user already uploaded it,
- `422` the number fails the Luhn check.

A withdrawal takes `{"order": "...", "sum": 10.5}` and answers `200` on
success, `402` when the balance is too low and `422` for an invalid order
number. Amounts are stored rounded to two decimal places.

The balance is returned as `{"current": ..., "withdrawn": ...}`. Orders are
listed with `number`, `status`, `accrual` and `uploaded_at`; withdrawals with
`order`, `sum` and `processed_at`. Times are RFC 3339. Listings answer `204`
when there is nothing to show.

Order statuses are `NEW`, `PROCESSING`, `INVALID` and `PROCESSED`. The accrual
workers ask the accrual system at `/api/orders/<number>`; an order it still
reports as `REGISTERED` or `PROCESSING` is asked about again after 2 seconds,
a failed request after 10 seconds. When the order is reported as `PROCESSED`
its accrual is stored and added to the owner's balance; when reported as
`INVALID` it is marked invalid.

## Using it as a library

`gophermart.app.bootstrap` builds the whole service from a `Config` and
returns the Flask application, which can be handed to any WSGI server. It
migrates the database and starts the background accrual threads.

```python
from gophermart.app import bootstrap
from gophermart.config import load_config

config = load_config(["-d", "gophermart.db", "-s", "secret"], {})
app = bootstrap(config)
```

The parts can also be wired by hand: the repositories in
`gophermart.users_repository`, `gophermart.orders_repository` and
`gophermart.balance_repository`; the services `AuthService`
(`gophermart.auth`), `OrderService` (`gophermart.order_service`) and
`BalanceService` (`gophermart.balance_service`); `AccrualAdapter` and
`AccrualWorker` in `gophermart.accrual`; and `gophermart.web.create_app`,
which takes the three services and an optional logger. The services depend
only on the protocols in `gophermart.ports`, so other stores can be supplied.

`gophermart.luhn.validate` is usable on its own:

```python
from gophermart.luhn import validate

validate("79927398713")  # True
validate("79927398714")  # False
```

## What it does not do

- Storage is SQLite only; there is no client for other database servers.
- The `gophermart` command serves with Flask's built-in development server;
  for production, serve the application returned by `bootstrap` with a WSGI
  server of your choice.
- It does not include an accrual system; one must be reachable at the
  configured address for orders to be processed.