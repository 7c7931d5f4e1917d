# ─────────────────────────────────────────────────────────────────────────────
# Cairo (Starknet) contract generator — blockchain1
# ─────────────────────────────────────────────────────────────────────────────


from contract_forge.generators.llm import LLMContractGenerator


class CairoContractGenerator(LLMContractGenerator):
    """Generates Starknet contracts in Cairo 1 syntax."""

    name = "cairo"
    file_prefix = "cairo_contract"
    system_prompt = (
        "You are an expert Cairo developer writing Starknet smart contracts. "
        "Use Cairo 1 syntax with #[starknet::contract], #[storage] and "
        "#[external(v0)] / #[abi(embed_v0)] entry points. Model each workflow "
        "node as contract state or an entry point and each edge as the call "
        "order between them. Emit events for state changes. Reply with one "
        "```cairo fenced block containing the full contract."
    )
