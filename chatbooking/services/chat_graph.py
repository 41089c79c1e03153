from langgraph.graph import StateGraph, END

from chatbooking.services.chat_state import TurnState
from chatbooking.services.chat_nodes import (
    extract_fields_node,
    merge_fields_node,
    route_step,
    service_node,
    date_node,
    time_node,
    name_node,
    phone_node,
    confirm_node,
    complete_node,
)

STEP_NODES = {
    "service_node": service_node,
    "date_node": date_node,
    "time_node": time_node,
    "name_node": name_node,
    "phone_node": phone_node,
    "confirm_node": confirm_node,
    "complete_node": complete_node,
}


def create_booking_graph():
    """
    Create and compile the LangGraph workflow for one booking dialog turn.

    Every step node either fills its field and loops back through the router,
    or sets a reply and ends the turn.
    """

    workflow = StateGraph(TurnState)

    workflow.add_node("extract_fields_node", extract_fields_node)
    workflow.add_node("merge_fields_node", merge_fields_node)
    for name, node in STEP_NODES.items():
        workflow.add_node(name, node)

    workflow.set_entry_point("extract_fields_node")
    workflow.add_edge("extract_fields_node", "merge_fields_node")

    routes = {name: name for name in STEP_NODES}
    routes["end"] = END

    workflow.add_conditional_edges("merge_fields_node", route_step, routes)
    for name in STEP_NODES:
        workflow.add_conditional_edges(name, route_step, routes)

    return workflow.compile()


# Create singleton instance
booking_graph = create_booking_graph()
