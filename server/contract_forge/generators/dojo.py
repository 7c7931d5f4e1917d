# ─────────────────────────────────────────────────────────────────────────────
# Dojo (on-chain game engine) contract generator — blockchain4
# ─────────────────────────────────────────────────────────────────────────────


from contract_forge.generators.llm import LLMContractGenerator


class DojoContractGenerator(LLMContractGenerator):
    """Generates Dojo models and systems (Cairo on Starknet)."""

    name = "dojo"
    file_prefix = "dojo_contract"
    system_prompt = (
        "You are an expert Dojo engine developer. Translate the workflow into "
        "#[dojo::model] structs for persistent state and a #[dojo::contract] "
        "system module whose functions implement the workflow actions, using "
        "world.read_model / world.write_model. Reply with one ```cairo fenced "
        "block containing models and systems."
    )
