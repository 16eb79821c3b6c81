"""
Service Configuration - Settings for the move arbitration backend

Every section is a dataclass with defaults and a from_env() loader.
ServiceConfig composes them and can be saved to / loaded from JSON.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional
import os
import json

from arbiter.policy import DEFAULT_WEIGHTS


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == '':
        return default
    return value.lower() in ('1', 'true', 'yes', 'on')


@dataclass
class GenerationConfig:
    """Text-generation service (Ollama-compatible /api/generate)"""
    base_url: str = "http://localhost:11434"
    model: str = "llama3"
    timeout: float = 30.0

    @classmethod
    def from_env(cls) -> 'GenerationConfig':
        return cls(
            base_url=os.getenv('OLLAMA_URL', 'http://localhost:11434'),
            model=os.getenv('OLLAMA_MODEL', 'llama3'),
            timeout=_env_float('OLLAMA_TIMEOUT', 30.0),
        )


@dataclass
class EmbeddingConfig:
    """Embedding service (Ollama-compatible /api/embeddings)"""
    base_url: str = "http://localhost:11434"
    model: str = "nomic-embed-text"
    timeout: float = 10.0

    @classmethod
    def from_env(cls) -> 'EmbeddingConfig':
        return cls(
            base_url=os.getenv('OLLAMA_URL', 'http://localhost:11434'),
            model=os.getenv('EMBED_MODEL', 'nomic-embed-text'),
            timeout=_env_float('EMBED_TIMEOUT', 10.0),
        )


@dataclass
class VectorStoreConfig:
    """Vector store backend and collection names"""
    backend: str = "local"           # "local" or "qdrant"
    url: str = "http://localhost:6333"
    api_key: Optional[str] = None
    timeout: float = 5.0
    memory_collection: str = "ztacs_memory"
    weights_collection: str = "policy_weights"
    training_collection: str = "training_examples"

    @classmethod
    def from_env(cls) -> 'VectorStoreConfig':
        return cls(
            backend=os.getenv('VECTOR_BACKEND', 'local'),
            url=os.getenv('QDRANT_URL', 'http://localhost:6333'),
            api_key=os.getenv('QDRANT_API_KEY'),
            timeout=_env_float('QDRANT_TIMEOUT', 5.0),
            memory_collection=os.getenv('MEMORY_COLLECTION', 'ztacs_memory'),
            weights_collection=os.getenv('WEIGHTS_COLLECTION', 'policy_weights'),
            training_collection=os.getenv('TRAINING_COLLECTION', 'training_examples'),
        )


@dataclass
class PolicyConfig:
    """Linear policy and online learner hyperparameters"""
    policy_id: str = "default"
    suggestion_bias: float = 0.15    # added to a validated AI suggestion
    learning_rate: float = 0.01      # negatives use half of this
    negative_samples: int = 2
    default_weights: List[float] = field(default_factory=lambda: list(DEFAULT_WEIGHTS))

    @classmethod
    def from_env(cls) -> 'PolicyConfig':
        config = cls(
            policy_id=os.getenv('POLICY_ID', 'default'),
            suggestion_bias=_env_float('POLICY_SUGGESTION_BIAS', 0.15),
            learning_rate=_env_float('POLICY_LEARNING_RATE', 0.01),
            negative_samples=_env_int('POLICY_NEGATIVE_SAMPLES', 2),
        )
        weights = os.getenv('POLICY_DEFAULT_WEIGHTS')
        if weights:
            config.default_weights = [float(w) for w in weights.split(',')]
        return config


@dataclass
class AuthConfig:
    """Bearer-token authentication"""
    enabled: bool = False
    tokens: List[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> 'AuthConfig':
        tokens = os.getenv('AUTH_TOKENS', '')
        return cls(
            enabled=_env_bool('AUTH_ENABLED', False),
            tokens=[t.strip() for t in tokens.split(',') if t.strip()],
        )


@dataclass
class ServiceConfig:
    """Master configuration for the service"""
    host: str = "0.0.0.0"
    port: int = 8080
    request_timeout: float = 45.0    # per-request deadline, seconds
    memory_top_k: int = 5
    log_level: str = "INFO"
    log_file: Optional[str] = None

    generation: GenerationConfig = field(default_factory=GenerationConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    store: VectorStoreConfig = field(default_factory=VectorStoreConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)

    @classmethod
    def from_env(cls) -> 'ServiceConfig':
        """Load from environment variables"""
        return cls(
            host=os.getenv('HOST', '0.0.0.0'),
            port=_env_int('PORT', 8080),
            request_timeout=_env_float('REQUEST_TIMEOUT', 45.0),
            memory_top_k=_env_int('MEMORY_TOP_K', 5),
            log_level=os.getenv('LOG_LEVEL', 'INFO'),
            log_file=os.getenv('LOG_FILE'),
            generation=GenerationConfig.from_env(),
            embedding=EmbeddingConfig.from_env(),
            store=VectorStoreConfig.from_env(),
            policy=PolicyConfig.from_env(),
            auth=AuthConfig.from_env(),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize configuration"""
        return {
            'host': self.host,
            'port': self.port,
            'request_timeout': self.request_timeout,
            'memory_top_k': self.memory_top_k,
            'log_level': self.log_level,
            'log_file': self.log_file,
            'generation': {
                'base_url': self.generation.base_url,
                'model': self.generation.model,
                'timeout': self.generation.timeout,
            },
            'embedding': {
                'base_url': self.embedding.base_url,
                'model': self.embedding.model,
                'timeout': self.embedding.timeout,
            },
            'store': {
                'backend': self.store.backend,
                'url': self.store.url,
                'timeout': self.store.timeout,
                'memory_collection': self.store.memory_collection,
                'weights_collection': self.store.weights_collection,
                'training_collection': self.store.training_collection,
            },
            'policy': {
                'policy_id': self.policy.policy_id,
                'suggestion_bias': self.policy.suggestion_bias,
                'learning_rate': self.policy.learning_rate,
                'negative_samples': self.policy.negative_samples,
                'default_weights': list(self.policy.default_weights),
            },
            'auth': {
                'enabled': self.auth.enabled,
            },
        }

    def save(self, filepath: str):
        """Save configuration to file (secrets are never written)"""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, filepath: str) -> 'ServiceConfig':
        """Load configuration from file; secrets still come from the environment"""
        with open(filepath, 'r') as f:
            data = json.load(f)

        env = cls.from_env()
        config = cls(
            host=data.get('host', env.host),
            port=data.get('port', env.port),
            request_timeout=data.get('request_timeout', env.request_timeout),
            memory_top_k=data.get('memory_top_k', env.memory_top_k),
            log_level=data.get('log_level', env.log_level),
            log_file=data.get('log_file', env.log_file),
            generation=GenerationConfig(**data.get('generation', {})),
            embedding=EmbeddingConfig(**data.get('embedding', {})),
            store=VectorStoreConfig(api_key=env.store.api_key,
                                    **data.get('store', {})),
            policy=PolicyConfig(**data.get('policy', {})),
            auth=AuthConfig(enabled=data.get('auth', {}).get('enabled', env.auth.enabled),
                            tokens=env.auth.tokens),
        )
        return config
