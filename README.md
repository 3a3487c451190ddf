# optourney

An asynchronous web server for tournaments, built on aiohttp. It serves an
index page and static files. Each user gets one live websocket connection,
and messages addressed to that user go out over it.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Running the server

```
optourney
```

Options:

- `--host HOST`: the interface to listen on. The default is all interfaces.
- `--port PORT`: the port to listen on. The default is 3000.

The server logs at debug level to standard output. Ctrl+C (SIGINT) stops
it. It then shuts the HTTP server down, allowing up to five seconds, and
stops the websocket handler after that. `optourney.app.main(argv=None)`
runs the same command from Python.

## Endpoints

- `/` is the index page. It shows whether the visitor is logged in.
- `/static/...` serves files from a `static` directory in the working
  directory. The route exists only if that directory is there when the
  server starts.
- `/connect` upgrades the request to a websocket. Only one connection per
  user id may be open at a time. A second attempt gets
  `429 only one connection at a time`.

## Library

- `optourney.app.Handler` is the aiohttp application (`Handler.app`). Its
  `serve(host, port)` method listens until `stop()` is called. `serve`
  raises `RuntimeError` if the socket cannot be bound.
- `optourney.websocket.WebsocketHandler` accepts websockets
  (`new_connection(request)`). Its `serve()` method passes incoming
  messages to `handle_message`, and `stop()` ends serving and closes open
  connections.
- `optourney.connection.Connection` wraps one socket. `read_incoming(queue)`
  puts incoming text frames on the queue as `IncomingMessage`s.
  `write_outgoing(source)` and `send(message)` write text frames.
- `optourney.bus.Bus` is a publish/subscribe bus. `subscribe(discord_id)`
  returns a `Subscription`, which can be iterated asynchronously or read
  with `get()`, and ends with `close()`. It also works as a context manager.
  `await bus.send(message)` delivers an `OutgoingMessage`'s payload to the
  subscriptions of every id in `message.to_discord_ids`.
- `optourney.message` builds and reads payloads. `new_outgoing(ids,
  PayloadOut(event, data))` and `new_outgoing_base(ids, event)` encode
  compact JSON of the form `{"event": <int>, "data": ...}`, leaving `data`
  out when it is `None`. `IncomingMessage.parse()` decodes a client
  payload. It raises `ValueError` for malformed JSON and
  `InvalidMessageError` for an event it does not know.
- `optourney.models.APIUser` holds a Discord user object, and
  `APIUser.from_dict` checks field types and ranges. `UserContext` holds
  the user of a request.
- `optourney.errs.CustomError` is an exception that carries an HTTP status
  code.

## What it does not do

- There is no login. Every request gets an anonymous `UserContext`, so the
  index page always reads "Not logged in". All visitors share the same
  empty user id, which means only one websocket can be open on the server
  at a time.
- No message events are defined yet. Every incoming websocket message is
  logged as a parse failure, and nothing is sent back.
- Nothing is stored. All state lives in memory for as long as the process
  runs.