from pydantic import BaseModel, Field, field_validator
from typing import List, Optional, Dict, Any

class RepositoryConfig(BaseModel):
    repository: Optional[str] = Field(None, description="目标仓库，格式为 owner/name")
    token: Optional[str] = Field(None, description="访问托管平台 API 的令牌")
    api_url: str = "https://api.github.com"
    per_page: int = Field(10, gt=0, le=100, description="列出已关闭变更集时的分页大小")
    timeout_sec: int = 20

    @field_validator("repository", "token", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def owner(self) -> Optional[str]:
        return self.repository.split("/", 1)[0] if self.repository else None

    @property
    def name(self) -> Optional[str]:
        if not self.repository or "/" not in self.repository:
            return None
        return self.repository.split("/", 1)[1]

class SourceConfig(BaseModel):
    type: str = "github"
    options: Dict[str, Any] = Field(default_factory=dict)

class AnalysisConfig(BaseModel):
    max_recent: int = Field(5, ge=0, le=5, description="附带摘要的最近合并记录数量上限")
    category_extensions: Dict[str, List[str]] = Field(
        default_factory=lambda: {
            "documentation": [".md"],
            "automation": [".js", ".json", ".py", ".ts", ".sh", ".toml", ".cfg", ".ini"],
            "workflows": [".yml", ".yaml"],
            "notebook": [".ipynb"],
        },
        description="扩展名到摘要类别的映射，顺序即摘要中的类别顺序",
    )

class SynthesisConfig(BaseModel):
    status_document: str = "README.md"
    documentation_extension: str = ".md"
    notebook_extension: str = ".ipynb"
    pipeline_dirs: List[str] = Field(
        default_factory=lambda: [".github/workflows", ".circleci", "pipelines", "pipeline"]
    )
    primary_notebook: Optional[str] = None

class DocumentConfig(BaseModel):
    path: str = "README.md"
    marker: str = "## 🤖 Automated Development Status"
    anchor: Optional[str] = "## 📄 License"

class StorageConfig(BaseModel):
    workflow_dir: str = "agent-workflow"

class FormatterConfig(BaseModel):
    section_template: str = "status_section.md.j2"
    proposal_template: str = "proposal.md.j2"
    template_dir: Optional[str] = None

class ValidationConfig(BaseModel):
    required_files: List[str] = Field(default_factory=lambda: ["README.md"])

class Config(BaseModel):
    repository: RepositoryConfig = Field(default_factory=RepositoryConfig, description="托管平台仓库相关配置")
    source: SourceConfig = Field(default_factory=SourceConfig, description="变更集来源配置")
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig, description="变更集分析配置")
    synthesis: SynthesisConfig = Field(default_factory=SynthesisConfig, description="任务生成规则配置")
    document: DocumentConfig = Field(default_factory=DocumentConfig, description="状态文档相关配置")
    storage: StorageConfig = Field(default_factory=StorageConfig, description="工作流产物存储配置")
    formatter: FormatterConfig = Field(default_factory=FormatterConfig, description="模板渲染相关配置")
    validation: ValidationConfig = Field(default_factory=ValidationConfig, description="校验相关配置")
