from __future__ import annotations

import base64
import binascii
from typing import Any

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey


class InstructionTranslationError(RuntimeError):
    pass


def _pubkey(raw: Any, *, section: str) -> Pubkey:
    value = str(raw or "").strip()
    if not value:
        raise InstructionTranslationError(f"Public key is missing in {section}")
    try:
        return Pubkey.from_string(value)
    except ValueError as error:
        raise InstructionTranslationError(f"Invalid public key in {section}: {value}") from error


def decode_instruction(raw: Any, *, section: str) -> Instruction | None:
    """Translate one aggregator instruction payload into a solders ``Instruction``.

    ``None`` means the aggregator omitted the instruction and is passed through
    so callers can drop it.
    """
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise InstructionTranslationError(f"Invalid instruction payload in {section}: {raw}")

    program_id = _pubkey(raw.get("programId"), section=f"{section}.programId")

    raw_accounts = raw.get("accounts")
    if not isinstance(raw_accounts, list):
        raise InstructionTranslationError(f"Instruction accounts are missing in {section}")

    metas: list[AccountMeta] = []
    for idx, account in enumerate(raw_accounts):
        if not isinstance(account, dict):
            raise InstructionTranslationError(f"Instruction account[{idx}] is invalid in {section}: {account}")
        metas.append(
            AccountMeta(
                pubkey=_pubkey(account.get("pubkey"), section=f"{section}.accounts[{idx}]"),
                is_signer=bool(account.get("isSigner")),
                is_writable=bool(account.get("isWritable")),
            )
        )

    try:
        data = base64.b64decode(str(raw.get("data") or ""), validate=True)
    except (binascii.Error, ValueError) as error:
        raise InstructionTranslationError(f"Instruction data decode failed in {section}: {error}") from error

    return Instruction(program_id, data, metas)


def decode_instruction_list(raw: Any, *, section: str) -> list[Instruction]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise InstructionTranslationError(f"Instruction list is invalid in {section}: {raw}")

    decoded = (decode_instruction(item, section=f"{section}[{index}]") for index, item in enumerate(raw))
    return [instruction for instruction in decoded if instruction is not None]


def extract_swap_instructions(payload: dict[str, Any]) -> tuple[list[Instruction], list[str]]:
    """Return the ordered instructions and lookup table addresses of a swap-instructions response."""
    instructions: list[Instruction] = []
    instructions.extend(
        decode_instruction_list(payload.get("computeBudgetInstructions"), section="computeBudgetInstructions")
    )

    token_ledger = decode_instruction(payload.get("tokenLedgerInstruction"), section="tokenLedgerInstruction")
    if token_ledger is not None:
        instructions.append(token_ledger)

    instructions.extend(decode_instruction_list(payload.get("setupInstructions"), section="setupInstructions"))

    for section in ("swapInstruction", "cleanupInstruction"):
        instruction = decode_instruction(payload.get(section), section=section)
        if instruction is not None:
            instructions.append(instruction)

    instructions.extend(decode_instruction_list(payload.get("otherInstructions"), section="otherInstructions"))

    lookup_addresses: list[str] = []
    raw_lookup_addresses = payload.get("addressLookupTableAddresses")
    if isinstance(raw_lookup_addresses, list):
        for raw_address in raw_lookup_addresses:
            address = str(raw_address or "").strip()
            if address and address not in lookup_addresses:
                lookup_addresses.append(address)

    return instructions, lookup_addresses
