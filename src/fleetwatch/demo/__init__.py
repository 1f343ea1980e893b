"""Demo fleet seeding."""

from fleetwatch.demo.seed import SAMPLE_DEVICES, SampleFleetSeeder, seed_sample_fleet, top_up_sample_fleet

__all__ = ["SAMPLE_DEVICES", "SampleFleetSeeder", "seed_sample_fleet", "top_up_sample_fleet"]
