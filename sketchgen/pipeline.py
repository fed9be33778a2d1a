"""High-level pipeline wiring analysis, metadata previews and contract generation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .analyzers import SketchAnalyzer
from .codegen import ContractGenerator, generate_contract, load_base_template
from .config import SketchGenConfig, load_config
from .logging import get_logger
from .metadata import MetadataResolver
from .models import AnalysisResult, CollectionsCodeResult

logger = get_logger("pipeline")

PREFERRED_METADATA_SOURCE = "forma"


@dataclass
class PreviewOutcome:
    """Sketch source prefixed with collection stand-ins for live preview."""

    code: str
    warning: str
    analysis: AnalysisResult
    collections: CollectionsCodeResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "warning": self.warning,
            "analysis": self.analysis.to_dict(),
            "collections": self.collections.to_dict(),
        }


@dataclass
class ContractOutcome:
    """Analysis of a sketch together with the contract generated from it."""

    analysis: AnalysisResult
    contract: str

    def to_dict(self) -> Dict[str, Any]:
        return {"analysis": self.analysis.to_dict(), "contract": self.contract}


class Pipeline:
    """Coordinates the analyzer, the metadata resolver and the contract generator."""

    def __init__(
        self,
        config: SketchGenConfig | None = None,
        resolver: MetadataResolver | None = None,
        generator: ContractGenerator | None = None,
        *,
        analyzer: SketchAnalyzer | None = None,
    ) -> None:
        self.config = config or load_config(Path.cwd())
        self.resolver = resolver or MetadataResolver(
            self.config.rpc.url,
            self.config.rpc.chain_id,
            ipfs_gateway=self.config.ipfs.gateway,
            request_timeout=self.config.rpc.request_timeout,
        )
        self.generator = generator or ContractGenerator()
        self.analyzer = analyzer or SketchAnalyzer()

    def analyze(self, source: str) -> AnalysisResult:
        return self.analyzer.analyze(source)

    def preview(self, source: str) -> PreviewOutcome:
        """Resolve live metadata for every collection and prepend the stand-in objects."""
        analysis = self.analyze(source)
        collections = self.resolver.resolve_all(analysis.data)

        warning = "".join(
            f"// {result.collection_name} metadata source is not {PREFERRED_METADATA_SOURCE}!\n\n"
            for result in collections.collections
            if result.metadata_source != PREFERRED_METADATA_SOURCE
        )
        if collections.failure_count:
            logger.warning(
                "Metadata unavailable for %d of %d collections",
                collections.failure_count,
                len(collections.collections),
            )
        return PreviewOutcome(
            code=collections.combined_code + source,
            warning=warning,
            analysis=analysis,
            collections=collections,
        )

    def generate(
        self,
        source: str,
        *,
        template: Optional[str] = None,
        contract_name: Optional[str] = None,
        chunk_size: Optional[int] = None,
    ) -> ContractOutcome:
        """Analyze ``source`` and assemble the contract that embeds it."""
        settings = self.config.generator
        analysis = self.analyze(source)
        if analysis.has_errors:
            messages = "; ".join(issue.message for issue in analysis.issues if issue.severity == "error")
            raise ValueError(messages)

        if template is None:
            template = load_base_template(settings.template)
        contract = generate_contract(
            source,
            template,
            chunk_size=chunk_size or settings.chunk_size,
            contract_name=contract_name or settings.contract_name,
            analysis=analysis,
            generator=self.generator,
        )
        logger.info(
            "Generated contract %s for %d collections",
            contract_name or settings.contract_name,
            len(analysis.collections),
        )
        return ContractOutcome(analysis=analysis, contract=contract)


__all__ = ["ContractOutcome", "Pipeline", "PreviewOutcome"]
