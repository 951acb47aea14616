# workflow.py
import asyncio

from langgraph.graph import StateGraph, END

from browsers import BrowserService
from models import EnrichConfig, GraphState
from tools import (
    chunk_list,
    filter_found,
    generate_profiles_with_queries,
    read_profiles_csv,
    run_batches_in_parallel,
    write_profiles_csv,
)


class Workflow:
    def __init__(self, service: BrowserService):
        self.service = service
        self.workflow = self.build_graph()

# ---- Nodes ----
    def _node_load_profiles(self, state: GraphState) -> GraphState:
        cfg: EnrichConfig = state["config"]
        state["profiles"] = read_profiles_csv(cfg.input_csv)
        print(f"📄 Loaded {len(state['profiles'])} profiles from {cfg.input_csv}")
        return state

    def _node_build_queries(self, state: GraphState) -> GraphState:
        state["queries"] = generate_profiles_with_queries(state["profiles"])
        return state

    def _node_make_batches(self, state: GraphState) -> GraphState:
        cfg: EnrichConfig = state["config"]
        state["batches"] = chunk_list(state["queries"], cfg.batch_size)
        print(f"📦 {len(state['batches'])} batches of up to {cfg.batch_size} profiles")
        return state

    async def _node_run_batches(self, state: GraphState) -> GraphState:
        state["results"] = await run_batches_in_parallel(self.service, state["batches"])
        return state

    def _node_save_results(self, state: GraphState) -> GraphState:
        cfg: EnrichConfig = state["config"]
        results = state["results"]
        if cfg.found_only:
            kept = filter_found(results)
            print(f"🧹 Dropped {len(results) - len(kept)} rows without a LinkedIn profile URL")
            results = state["results"] = kept

        msg = write_profiles_csv(results, cfg.output_csv)
        state["saved"] = cfg.output_csv
        print("Results:")
        for r in results:
            print(f"  {r.email}: {r.linkedin_profile}")
        print("--------------------------------")
        print(msg)
        print("--------------------------------")
        return state

    # ---- Graph builder ----
    def build_graph(self):
        g = StateGraph(GraphState)

        g.add_node("load_profiles", self._node_load_profiles)
        g.add_node("build_queries", self._node_build_queries)
        g.add_node("make_batches", self._node_make_batches)
        g.add_node("run_batches", self._node_run_batches)
        g.add_node("save_results", self._node_save_results)

        g.set_entry_point("load_profiles")
        g.add_edge("load_profiles", "build_queries")
        g.add_edge("build_queries", "make_batches")
        g.add_edge("make_batches", "run_batches")
        g.add_edge("run_batches", "save_results")
        g.add_edge("save_results", END)

        return g.compile()

    async def arun(self, config: EnrichConfig) -> GraphState:
        initial_state = GraphState(config=config)
        try:
            final_state = await self.workflow.ainvoke(initial_state)
        finally:
            await self.service.aclose()
        return GraphState(**final_state)

    def run(self, config: EnrichConfig) -> GraphState:
        return asyncio.run(self.arun(config))
