# pgproto

Building blocks for speaking the PostgreSQL frontend/backend protocol from
Python. `pgproto` handles the byte-level details of client messages,
authentication and the binary format of values; a driver built on top of it
supplies the sockets and the query logic.

The package assumes that the server's `client_encoding` is `UTF8`. It has
no runtime dependencies outside the standard library.

## Modules

| Module | Contents |
| --- | --- |
| `pgproto.core` | `IsNull`, `ConversionError`, `frame_nullable`, `fit_i16`, `fit_i32` |
| `pgproto.escape` | `escape_literal`, `escape_identifier` |
| `pgproto.frontend` | Client messages: `startup_message`, `ssl_request`, `cancel_request`, `password_message`, `sasl_initial_response`, `sasl_response`, `query`, `parse`, `bind`, `describe`, `execute`, `close`, `sync`, `terminate`, `copy_data`, `copy_done`, `copy_fail`; and `BindError` |
| `pgproto.authentication` | `md5_hash` for `AuthenticationMD5Password` |
| `pgproto.sasl` | `ScramSha256`, `ChannelBinding`, `ScramError`, the parsers `parse_server_first_message` and `parse_server_final_message`, and the helpers `normalize` (SASLprep) and `hi` |
| `pgproto.password` | Client-side password hashing for `ALTER ROLE ... PASSWORD`: `scram_sha_256`, `md5` |
| `pgproto.scalars` | bool, bytea, text, `"char"`, int2/int4/int8, oid, pg_lsn, float4/float8, hstore, varbit (`Varbit`), timestamp, date, time, macaddr, uuid |
| `pgproto.composite` | Arrays (`Array`, `ArrayDimension`), ranges (`Range`, `RangeBound`, `BoundKind`), `Point`, `Box`, `Path`, `Inet` |
| `pgproto.datfile` | `DatParser`, `parse_dat`, `DatError`: a reader for the server's `.dat` catalog files |
| `pgproto.typegen`, `pgproto.sqlstate_gen` | Generators of a built-in type module and a SQLSTATE module |
| `pgproto.codegen_cli` | The `pgproto-codegen` command |

## Installation

```
pip install pgproto
```

## Examples

### Escaping

Prefer parameterized queries. When a literal really has to be built into
SQL text:

```python
from pgproto.escape import escape_identifier, escape_literal

escape_literal("f'oo")        # "'f''oo'"
escape_literal("f\\oo")       # " E'f\\\\oo'"  (E'' form, with a leading space)
escape_identifier('f"oo')     # '"f""oo"'
```

### Building messages

Every function in `pgproto.frontend` returns the complete framed message as
`bytes`:

```python
from pgproto import frontend

out = bytearray()
out += frontend.startup_message({"user": "alice", "database": "app"})
out += frontend.parse("", "SELECT $1::int4", [23])
out += frontend.bind("", "", [1], [b"\x00\x00\x00\x01"], lambda v: v, [1])
out += frontend.describe(b"P", "")
out += frontend.execute("", 0)
out += frontend.sync()
```

A name, query or password holding an embedded NUL byte raises `ValueError`.
`bind` raises `BindError`; its `conversion` attribute is true when the
parameter serializer failed and false when the message itself could not be
encoded. A count or length that does not fit its wire field raises
`ConversionError`.

### MD5 authentication

```python
from pgproto.authentication import md5_hash

password = b"password"
reply = md5_hash(b"md5_user", password, bytes([0x2A, 0x3D, 0x8F, 0xE0]))
# "md562af4dd09bbb41884907a838a3233294"
```

### SCRAM-SHA-256

```python
from pgproto.frontend import sasl_initial_response, sasl_response
from pgproto.sasl import SCRAM_SHA_256, ChannelBinding, ScramSha256

password = b"password"
scram = ScramSha256(password, ChannelBinding.unsupported())
first = sasl_initial_response(SCRAM_SHA_256, scram.message())
# send `first`; pass the body of AuthenticationSASLContinue to update()
scram.update(server_first)
second = sasl_response(scram.message())
# send `second`; pass the body of AuthenticationSASLFinal to finish()
scram.finish(server_final)   # raises ScramError unless the server is verified
```

`ChannelBinding.tls_server_end_point(signature)` selects SCRAM-SHA-256-PLUS
with the certificate hash the caller obtained from its TLS layer.

### Hashing a password on the client

```python
from pgproto.password import scram_sha_256

password = "password"
stored = scram_sha_256(password)   # "SCRAM-SHA-256$4096:<salt>$<stored key>:<server key>"
```

A random 16-byte salt is used unless one is passed as `salt`.

### Binary values

```python
from pgproto.composite import ArrayDimension, array_from_sql, array_to_sql
from pgproto.scalars import int4_from_sql, int4_to_sql

assert int4_from_sql(int4_to_sql(0x01020304)) == 0x01020304

data = array_to_sql([ArrayDimension(2, 1)], 23, [1, None], lambda v: None if v is None else int4_to_sql(v))
array = array_from_sql(data)
array.has_nulls              # True
list(array.values())         # [b"\x00\x00\x00\x01", None]
```

Decoders raise `ValueError` when a buffer has the wrong size or holds
invalid data.

## Code generation

`pgproto-codegen` reads `errcodes.txt`, `pg_type.dat` and `pg_range.dat`
from the server's source tree and writes two Python modules:
`sqlstate.py`, with a `SqlState` class and a constant for each error code,
and `pg_types.py`, with a `Type` constant for each built-in type (composite
and enum types are left out).

```
pgproto-codegen --data-dir path/to/catalog --output-dir path/to/output
```

Both options default to the current directory. The command exits with
status 1 and a message on standard error when a file cannot be read or is
malformed. The same work is available as `sqlstate_gen.build` and
`typegen.build`.

## What the package does not do

- It opens no connections and handles no sockets or TLS; it only produces
  and consumes bytes.
- It does not parse backend (server to client) messages; it builds frontend
  messages and decodes value payloads and SCRAM server messages only.
- It ships no generated type or SQLSTATE tables; run `pgproto-codegen`
  against the catalog files to produce them.

## Running the tests

```
pip install "pgproto[test]"
pytest
```