"""Call tree simulation through a real OpenTelemetry TracerProvider."""

from typing import Callable, Dict, List, Optional, Sequence

from opentelemetry.context import Context
from opentelemetry.sdk.trace.sampling import Sampler, SamplingResult
from opentelemetry.trace import set_span_in_context

from consistent_sampling.estimation import NO_PARENT
from consistent_sampling.exporter import CollectingSpanExporter
from consistent_sampling.tracer import DeterministicIdGenerator, SpanRecord, create_tracer_provider


def node_name(node: int) -> str:
    return f"span@{node}"


class PerNodeSampler(Sampler):
    """Delegates every decision to the sampler configured for the span name."""

    def __init__(self) -> None:
        self.samplers: Dict[str, Sampler] = {}

    def should_sample(
        self,
        parent_context,
        trace_id,
        name,
        kind=None,
        attributes=None,
        links=None,
        trace_state=None,
    ) -> SamplingResult:
        return self.samplers[name].should_sample(
            parent_context, trace_id, name, kind, attributes, links, trace_state
        )

    def get_description(self) -> str:
        return "PerNodeSampler"


class TreeSimulator:
    """Creates one trace per call, one span per tree node."""

    def __init__(self, parents: Sequence[int], seed: int = 0) -> None:
        self.parents = list(parents)
        self.exporter = CollectingSpanExporter()
        self.sampler = PerNodeSampler()
        self.provider = create_tracer_provider(
            self.sampler,
            exporter=self.exporter,
            id_generator=DeterministicIdGenerator(seed),
        )
        self.tracer = self.provider.get_tracer("consistent-sampling-simulation")

    def simulate(self, sampler_provider: Callable[[int], Sampler]) -> List[SpanRecord]:
        """Run one trace and return the spans that were sampled."""
        self.exporter.clear()
        self.sampler.samplers = {
            node_name(node): sampler_provider(node) for node in range(len(self.parents))
        }

        spans = []
        for node, parent in enumerate(self.parents):
            if parent == NO_PARENT:
                context: Optional[Context] = Context()
            else:
                context = set_span_in_context(spans[parent])
            spans.append(self.tracer.start_span(node_name(node), context=context))

        for span in reversed(spans):
            span.end()
        return self.exporter.get_spans()

    def shutdown(self) -> None:
        self.provider.shutdown()
