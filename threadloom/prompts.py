"""
Context-document templates for the content-generation collaborator

Every template is rendered with str.format() and sent as the user message
after GENERATION_SYSTEM. The JSON shape to return is passed separately as a
schema, so templates describe the situation only.
"""

GENERATION_SYSTEM = """You write short pieces of narrative content for an interactive story engine.

Rules:
- Reply with a single JSON object that matches the requested schema exactly
- Keep every string under 200 characters
- Never invent characters, places or threads that are not mentioned in the context
- Stay consistent with the tone of the material you are given"""


CHAIN_CONTEXT = """A player choice will have delayed consequences.

Choice: {choice_text}
Origin: {origin_description}
Moral alignment: {moral_alignment}
Risk: {risk_level:.2f}  Moral weight: {moral_weight:.2f}
Magnitude: {magnitude:.2f}
Affected story threads: {threads}
Characters involved: {actors}

Describe in one sentence the consequence that is now set in motion."""


MANIFESTATION_CONTEXT = """A consequence scheduled earlier has come due on turn {current_turn}.

Consequence: {origin_description}
Depth in the consequence chain: {chain_level}
Magnitude: {magnitude:.2f}
Affected story threads: {threads}
Characters involved: {actors}

Describe what happens now. If the consequence could ripple further, give up
to {max_children} short seeds for follow-on consequences."""


GROUP_NAME_CONTEXT = """Name a group of characters bound by a {dynamics_type} dynamic.

Members: {members}

Give a short evocative group name (max 6 words)."""


COMPLICATIONS_CONTEXT = """A romantic tension of type "{tension_type}" has formed.

Characters involved: {actors}
Player involved: {player_involved}
Tension level: {tension_level:.0f}/100

List two or three complications this tension creates."""


JEALOUSY_HOOK_CONTEXT = """Jealousy has pushed a romantic tension past its breaking point.

Tension type: {tension_type}
Jealous character: {jealous_actor}
Target of the jealousy: {target_actor}
What triggered it: {trigger_description}
Tension level: {tension_level:.0f}/100
Recent complications: {complications}

Write a one-sentence story hook the player could follow up on."""


PSYCHOLOGICAL_CONTEXT = """The protagonist has lived through {total_loops} time loop(s).

Latest loop trigger: {trigger_reason}
Effect developing: {effect_type}
Intensity: {intensity:.0f}/100

Describe the effect in one sentence and list how it manifests in behaviour."""
