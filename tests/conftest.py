"""
Pytest configuration and fixtures for spring-twin tests
"""
import sys
from pathlib import Path

import pytest

# Ensure the `src/` directory is importable when the package is not installed.
ROOT_DIR = Path(__file__).parent.parent
SRC_DIR = ROOT_DIR / "src"

for path in (ROOT_DIR, SRC_DIR):
    path_str = str(path)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from spring_twin.architecture.graph_store import GraphStore
from spring_twin.architecture.persistence import JsonSnapshotRepository
from spring_twin.config.settings import Settings
from spring_twin.jobs.coordinator import JobCoordinator
from spring_twin.project.registry import ProjectRegistry


SAMPLE_SOURCES = {
    "com/acme/shop/web/OrderController.java": """
package com.acme.shop.web;

import com.acme.shop.model.Order;
import com.acme.shop.service.OrderService;
import java.util.List;
import lombok.RequiredArgsConstructor;
import org.springframework.http.MediaType;
import org.springframework.web.bind.annotation.*;

@RestController
@RequestMapping("/api/orders")
@RequiredArgsConstructor
public class OrderController {

    private final OrderService orderService;

    @GetMapping("/{id}")
    public Order get(@PathVariable Long id) {
        return orderService.find(id);
    }

    @PostMapping(consumes = MediaType.APPLICATION_JSON_VALUE)
    public Order create(@RequestBody Order order) {
        return orderService.save(order);
    }

    @RequestMapping(value = "/search", method = {RequestMethod.GET, RequestMethod.POST})
    List<Order> search(String query) {
        return List.of();
    }
}
""",
    "com/acme/shop/service/OrderService.java": """
package com.acme.shop.service;

import com.acme.shop.model.Order;
import com.acme.shop.repository.OrderRepository;
import org.springframework.beans.factory.annotation.Autowired;
import org.springframework.stereotype.Service;

@Service
public class OrderService {

    @Autowired
    private OrderRepository repository;

    @Autowired
    private PricingService pricing;

    public Order find(Long id) {
        return repository.findById(id).orElseThrow();
    }

    public Order save(Order order) {
        return save(order, true);
    }

    public Order save(Order order, boolean reprice) {
        if (reprice) {
            pricing.reprice(order);
        }
        return repository.save(order);
    }
}
""",
    "com/acme/shop/service/PricingService.java": """
package com.acme.shop.service;

import com.acme.shop.model.Order;
import org.springframework.stereotype.Service;

@Service
public class PricingService {

    private final OrderService orderService;

    public PricingService(OrderService orderService) {
        this.orderService = orderService;
    }

    public void reprice(Order order) {
        this.orderService.find(order.getId());
    }
}
""",
    "com/acme/shop/repository/OrderRepository.java": """
package com.acme.shop.repository;

import com.acme.shop.model.Order;
import org.springframework.data.jpa.repository.JpaRepository;

public interface OrderRepository extends JpaRepository<Order, Long> {
    Order findByCode(String code);
}
""",
    "com/acme/shop/model/Order.java": """
package com.acme.shop.model;

import jakarta.persistence.Entity;

@Entity
public class Order {
    private Long id;

    public Long getId() {
        return id;
    }
}
""",
    "com/acme/shop/internal/legacy/LegacyJob.java": """
package com.acme.shop.internal.legacy;

import org.springframework.stereotype.Component;

@Component
class LegacyJob {
    void run() {
    }
}
""",
}

CONTROLLER = "com.acme.shop.web.OrderController"
ORDER_SERVICE = "com.acme.shop.service.OrderService"
PRICING_SERVICE = "com.acme.shop.service.PricingService"
ORDER_REPOSITORY = "com.acme.shop.repository.OrderRepository"
ORDER = "com.acme.shop.model.Order"
LEGACY_JOB = "com.acme.shop.internal.legacy.LegacyJob"


def write_sources(root: Path, sources: dict) -> Path:
    java_root = root / "src" / "main" / "java"
    for relative, content in sources.items():
        path = java_root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content.lstrip(), encoding="utf-8")
    return root


@pytest.fixture
def sample_project(tmp_path):
    """A small Spring service project on disk"""
    return write_sources(tmp_path / "shop", SAMPLE_SOURCES)


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        data_dir=tmp_path / "data",
        job_timeout_seconds=30.0,
        progress_min_interval_seconds=0.0,
        extraction_workers=2,
    )


@pytest.fixture
def registry(tmp_path):
    return ProjectRegistry(tmp_path / "data" / "projects.json")


@pytest.fixture
def graph_store(tmp_path):
    return GraphStore(JsonSnapshotRepository(tmp_path / "data" / "graphs"))


@pytest.fixture
def shop_project(registry, sample_project):
    return registry.create_project("shop", str(sample_project), project_id="shop")


@pytest.fixture
def make_coordinator(registry, graph_store):
    """Factory for coordinators sharing the registry and graph store"""
    created = []

    def factory(**kwargs):
        kwargs.setdefault("progress_min_interval", 0.0)
        kwargs.setdefault("extraction_workers", 2)
        coordinator = JobCoordinator(registry, graph_store, **kwargs)
        created.append(coordinator)
        return coordinator

    return factory
