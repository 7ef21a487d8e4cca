"""EIP-712 signing.

- Routines for EIP-712 typed structured data encoding and hashing.

- `Based on Gnosis utilities <https://raw.githubusercontent.com/safe-global/safe-eth-py/master/gnosis/eth/eip712/__init__.py>`__,
  reworked so that the message is validated into a closed value tree before
  anything is hashed.

- Used in :py:mod:`link_signer.hyperliquid.link` for signing ``linkStakingUser`` actions
  and in :py:mod:`link_signer.api` for signing arbitrary typed data documents.

Example:

.. code-block:: python

    from link_signer.eip_712 import Domain, eip712_encode_hash

    domain = Domain(name="MyDapp", version="1", chain_id=1)
    types = {
        "Mail": [
            {"name": "from", "type": "address"},
            {"name": "to", "type": "address"},
            {"name": "contents", "type": "string"},
        ],
    }
    message = {
        "from": "0x0000000000000000000000000000000000000001",
        "to": "0x0000000000000000000000000000000000000002",
        "contents": "Hello",
    }
    digest = eip712_encode_hash(domain, types, "Mail", message)
    signature = wallet.sign_digest(digest)

Past copyright:

.. code-block:: text

    Copyright (C) 2022 Judd Vinet <jvinet@zeroflux.org>
                       Uxío Fuentefría <uxio@safe.global>

    Permission is hereby granted, free of charge, to any person obtaining a copy of
    this software and associated documentation files (the "Software"), to deal in
    the Software without restriction, including without limitation the rights to
    use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies
    of the Software, and to permit persons to whom the Software is furnished to do
    so, subject to the following conditions:

    The above copyright notice and this permission notice shall be included in all
    copies or substantial portions of the Software.

    THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
    IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
    FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
    AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
    LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
    OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
    SOFTWARE.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from eth_abi import encode as encode_abi
from eth_typing import HexAddress
from hexbytes import HexBytes
from web3 import Web3

#: Type name -> ordered list of ``{"name": ..., "type": ...}`` field definitions
TypeSchema = Dict[str, List[Dict[str, str]]]

#: The domain type is never part of the message schema
EIP712_DOMAIN_TYPE = "EIP712Domain"

#: Canonical field order of the domain struct, with the Python attribute and the Solidity type
DOMAIN_FIELDS = (
    ("name", "name", "string"),
    ("version", "version", "string"),
    ("chainId", "chain_id", "uint256"),
    ("verifyingContract", "verifying_contract", "address"),
    ("salt", "salt", "bytes32"),
)

_INT_TYPE = re.compile(r"^(u?)int(\d*)$")

_FIXED_BYTES_TYPE = re.compile(r"^bytes(\d+)$")

_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")


class SchemaError(Exception):
    """The type schema is malformed.

    - A field refers to a struct type that is not defined

    - Struct types refer to each other recursively
    """


class FieldMismatchError(Exception):
    """The message has missing or undeclared fields for its struct type."""


class TypeMismatchError(Exception):
    """A message value does not fit the declared field type."""


def fast_keccak(value: bytes) -> bytes:
    return bytes(Web3.keccak(value))


@dataclass(frozen=True, slots=True)
class Primitive:
    """A leaf value: ``string``, ``bytes``, ``bool``, ``address``, ``(u)intN`` or ``bytesN``.

    ``value`` is already normalised: ``str`` for strings, ``bytes`` for byte types and addresses,
    ``int`` for integers and ``bool`` for booleans.
    """

    kind: str
    value: Union[str, bytes, int, bool]


@dataclass(frozen=True, slots=True)
class Struct:
    """A struct value with its fields in the schema declared order."""

    type_name: str
    fields: Dict[str, "TypedValue"]


@dataclass(frozen=True, slots=True)
class Array:
    """A dynamic ``T[]`` or fixed size ``T[n]`` array value."""

    element_type: str
    items: tuple


TypedValue = Union[Primitive, Struct, Array]


@dataclass(frozen=True, slots=True)
class Domain:
    """EIP-712 domain.

    All fields are optional in EIP-712.
    The domain type is derived from the fields that are set.
    """

    name: Optional[str] = None
    version: Optional[str] = None
    chain_id: Optional[int] = None
    verifying_contract: Optional[HexAddress] = None
    salt: Optional[bytes] = None

    @classmethod
    def from_json_dict(cls, data: dict) -> "Domain":
        """Read ethers.js style ``{name, version, chainId, verifyingContract, salt}`` domain."""
        unknown = set(data.keys()) - {json_name for json_name, _, _ in DOMAIN_FIELDS}
        if unknown:
            raise FieldMismatchError(f"Unknown EIP-712 domain fields: {sorted(unknown)}")
        return cls(**{attr: data[json_name] for json_name, attr, _ in DOMAIN_FIELDS if data.get(json_name) is not None})

    def get_domain_type(self) -> List[Dict[str, str]]:
        """Fields of ``EIP712Domain`` type for this domain, in the canonical order."""
        return [{"name": json_name, "type": typ} for json_name, attr, typ in DOMAIN_FIELDS if getattr(self, attr) is not None]

    def to_message(self) -> dict:
        return {json_name: getattr(self, attr) for json_name, attr, _ in DOMAIN_FIELDS if getattr(self, attr) is not None}


def get_base_type(typ: str) -> str:
    """Strip array suffixes.

    Type names can contain other non-word characters, like ``HyperliquidTransaction:LinkStakingUser``,
    so only ``[...]`` is removed.
    """
    bracket = typ.find("[")
    if bracket < 0:
        return typ
    return typ[:bracket]


def is_primitive_type(typ: str) -> bool:
    if typ in ("string", "bytes", "bool", "address"):
        return True

    m = _INT_TYPE.match(typ)
    if m:
        bits = int(m.group(2) or 256)
        return bits % 8 == 0 and 8 <= bits <= 256

    m = _FIXED_BYTES_TYPE.match(typ)
    if m:
        return 1 <= int(m.group(1)) <= 32

    return False


def _check_struct_cycles(struct_type: str, types: TypeSchema, path: tuple, checked: set):
    """Walk plain struct fields only, arrays may recurse."""
    if struct_type in path:
        cycle = " -> ".join(path + (struct_type,))
        raise SchemaError(f"Recursive struct types are not allowed: {cycle}")

    if struct_type in checked:
        return

    for field in types[struct_type]:
        typ = field["type"]
        if typ.endswith("]") or is_primitive_type(typ):
            continue
        _check_struct_cycles(typ, types, path + (struct_type,), checked)

    checked.add(struct_type)


def find_type_dependencies(primary_type: str, types: TypeSchema, results: Optional[List[str]] = None) -> List[str]:
    """Find all struct types reachable from the primary type, including the primary type itself.

    A struct may refer back to itself through an array field (``Node(Node[] children)``),
    but not through plain struct fields, as such a value could never be finite.

    :raise SchemaError:
        On undefined types and recursive struct references
    """
    top_level = results is None
    if results is None:
        results = []

    base_type = get_base_type(primary_type)

    if is_primitive_type(base_type):
        return results

    if base_type not in types:
        raise SchemaError(f"Type {base_type} is not defined in the schema, known types are {sorted(types.keys())}")

    if base_type in results:
        return results

    results.append(base_type)

    for field in types[base_type]:
        find_type_dependencies(field["type"], types, results)

    if top_level:
        checked = set()
        for struct_type in results:
            _check_struct_cycles(struct_type, types, (), checked)

    return results


def encode_type(primary_type: str, types: TypeSchema) -> str:
    """Get the type signature string, e.g. ``Mail(Person from,Person to,string contents)Person(string name,address wallet)``."""
    deps = find_type_dependencies(primary_type, types)
    deps = sorted([d for d in deps if d != primary_type])
    deps = [primary_type] + deps
    result = ""
    for typ in deps:
        defs = [f"{t['type']} {t['name']}" for t in types[typ]]
        result += typ + "(" + ",".join(defs) + ")"
    return result


def hash_type(primary_type: str, types: TypeSchema) -> bytes:
    return fast_keccak(encode_type(primary_type, types).encode())


def _parse_bytes(typ: str, name: str, value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str) and value.startswith("0x"):
        try:
            return bytes(HexBytes(value))
        except ValueError as e:
            raise TypeMismatchError(f"Field {name} of type {typ}: not a hex string: {value}") from e
    raise TypeMismatchError(f"Field {name} of type {typ}: expected bytes or 0x hex string, got {type(value).__name__}")


def _parse_primitive(typ: str, name: str, value: Any) -> Primitive:
    if typ == "string":
        if not isinstance(value, str):
            raise TypeMismatchError(f"Field {name} of type string: got {type(value).__name__}: {value!r}")
        return Primitive(typ, value)

    if typ == "bool":
        if not isinstance(value, bool):
            raise TypeMismatchError(f"Field {name} of type bool: got {type(value).__name__}: {value!r}")
        return Primitive(typ, value)

    if typ == "address":
        if not isinstance(value, str) or not _ADDRESS.match(value):
            raise TypeMismatchError(f"Field {name} of type address: not a 0x prefixed 20-byte hex address: {value!r}")
        return Primitive(typ, bytes.fromhex(value[2:]))

    if typ == "bytes":
        return Primitive(typ, _parse_bytes(typ, name, value))

    m = _FIXED_BYTES_TYPE.match(typ)
    if m:
        raw = _parse_bytes(typ, name, value)
        if len(raw) != int(m.group(1)):
            raise TypeMismatchError(f"Field {name} of type {typ}: got {len(raw)} bytes")
        return Primitive(typ, raw)

    m = _INT_TYPE.match(typ)
    assert m, f"Not a primitive type: {typ}"
    # bool is a subclass of int
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeMismatchError(f"Field {name} of type {typ}: expected int, got {type(value).__name__}: {value!r}")
    bits = int(m.group(2) or 256)
    if m.group(1) == "u":
        low, high = 0, 2**bits - 1
    else:
        low, high = -(2 ** (bits - 1)), 2 ** (bits - 1) - 1
    if not low <= value <= high:
        raise TypeMismatchError(f"Field {name} of type {typ}: value {value} out of range")
    return Primitive(typ, value)


def _parse_field(typ: str, name: str, value: Any, types: TypeSchema) -> TypedValue:
    if typ.endswith("]"):
        element_type = typ[: typ.rindex("[")]
        size = typ[typ.rindex("[") + 1 : -1]
        if not isinstance(value, (list, tuple)):
            raise TypeMismatchError(f"Field {name} of type {typ}: expected a list, got {type(value).__name__}")
        if size and len(value) != int(size):
            raise TypeMismatchError(f"Field {name} of type {typ}: expected {size} items, got {len(value)}")
        items = tuple(_parse_field(element_type, f"{name}[{i}]", v, types) for i, v in enumerate(value))
        return Array(element_type, items)

    if typ in types:
        return parse_typed_value(typ, value, types)

    if is_primitive_type(typ):
        return _parse_primitive(typ, name, value)

    raise SchemaError(f"Field {name} has unknown type {typ}")


def parse_typed_value(primary_type: str, data: Any, types: TypeSchema) -> Struct:
    """Validate a message against the schema and turn it into a :py:class:`Struct` tree.

    :raise FieldMismatchError:
        The message has missing or undeclared fields

    :raise TypeMismatchError:
        A value does not match its declared type
    """
    if primary_type not in types:
        raise SchemaError(f"Type {primary_type} is not defined in the schema")

    if not isinstance(data, dict):
        raise TypeMismatchError(f"Struct {primary_type}: expected a dict, got {type(data).__name__}")

    declared = [f["name"] for f in types[primary_type]]
    missing = [n for n in declared if n not in data]
    extra = [n for n in data if n not in declared]
    if missing or extra:
        raise FieldMismatchError(f"Struct {primary_type} field mismatch, missing: {missing}, undeclared: {extra}")

    fields = {f["name"]: _parse_field(f["type"], f["name"], data[f["name"]], types) for f in types[primary_type]}
    return Struct(primary_type, fields)


def encode_value(value: TypedValue, types: TypeSchema) -> bytes:
    """Encode a single value as a 32-byte word."""
    if isinstance(value, Struct):
        return hash_struct_value(value, types)

    if isinstance(value, Array):
        return fast_keccak(b"".join(encode_value(v, types) for v in value.items))

    typ = value.kind
    if typ == "string":
        return fast_keccak(value.value.encode("utf-8"))

    if typ == "bytes":
        return fast_keccak(value.value)

    # Integers and addresses are left padded, bytesN right padded
    return encode_abi([typ], [value.value])


def hash_struct_value(value: Struct, types: TypeSchema) -> bytes:
    encoded = [hash_type(value.type_name, types)]
    encoded += [encode_value(v, types) for v in value.fields.values()]
    return fast_keccak(b"".join(encoded))


def hash_struct(primary_type: str, data: dict, types: TypeSchema) -> bytes:
    """Calculate EIP-712 struct hash for a message.

    :param primary_type:
        Struct type name of the message

    :param data:
        Message as a dict, nested structs as dicts

    :param types:
        Type schema, without ``EIP712Domain``

    :return:
        32 bytes struct hash
    """
    find_type_dependencies(primary_type, types)
    value = parse_typed_value(primary_type, data, types)
    return hash_struct_value(value, types)


def hash_domain(domain: Domain) -> bytes:
    """Calculate the domain separator."""
    types = {EIP712_DOMAIN_TYPE: domain.get_domain_type()}
    return hash_struct(EIP712_DOMAIN_TYPE, domain.to_message(), types)


def eip712_encode(domain: Domain, types: TypeSchema, primary_type: str, message: dict) -> List[bytes]:
    """Return a 3-element list of the encoded, signable data.

      0: The magic & version (0x1901)
      1: The domain separator
      2: The struct hash of the message
    """
    return [
        bytes.fromhex("1901"),
        hash_domain(domain),
        hash_struct(primary_type, message, types),
    ]


def eip712_encode_hash(domain: Domain, types: TypeSchema, primary_type: str, message: dict) -> bytes:
    """
    :return: Keccak256 hash of encoded signable data, the digest that gets signed
    """
    return fast_keccak(b"".join(eip712_encode(domain, types, primary_type, message)))


def find_primary_type(types: TypeSchema) -> str:
    """Find the only struct type no other struct refers to."""
    referenced = {get_base_type(f["type"]) for fields in types.values() for f in fields}
    roots = [t for t in types if t not in referenced]
    if len(roots) != 1:
        raise SchemaError(f"Cannot determine primary type, candidates: {roots}")
    return roots[0]


@dataclass(frozen=True, slots=True)
class TypedDataDocument:
    """A full EIP-712 document as passed to ``eth_signTypedData_v4`` or ethers.js ``signTypedData()``."""

    domain: Domain
    types: TypeSchema
    primary_type: str
    message: dict

    @classmethod
    def from_json_dict(cls, data: dict) -> "TypedDataDocument":
        """Parse ``{domain, types, primaryType, message}``.

        ``primaryType`` can be left out, as with ethers.js.
        """
        try:
            types = {k: v for k, v in data["types"].items() if k != EIP712_DOMAIN_TYPE}
            domain = Domain.from_json_dict(data.get("domain") or {})
            message = data["message"]
        except (KeyError, AttributeError, TypeError) as e:
            raise SchemaError(f"Not a valid EIP-712 document: {e}") from e

        for typ, fields in types.items():
            if not isinstance(fields, list) or not all(isinstance(f, dict) and {"name", "type"} <= f.keys() for f in fields):
                raise SchemaError(f"Malformed field list for type {typ}")

        primary_type = data.get("primaryType") or find_primary_type(types)
        return cls(domain=domain, types=types, primary_type=primary_type, message=message)

    def hash(self) -> bytes:
        return eip712_encode_hash(self.domain, self.types, self.primary_type, self.message)
