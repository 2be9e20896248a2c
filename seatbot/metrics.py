import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class StageMetric:
    name: str
    start_time: float
    end_time: Optional[float] = None
    success: bool = False
    error: Optional[str] = None


@dataclass
class MetricsTracker:
    start_time: float = field(default_factory=time.time)
    stages: list[StageMetric] = field(default_factory=list)
    zone_retries: int = 0
    captcha_attempts: int = 0

    def start_stage(self, name: str) -> StageMetric:
        stage = StageMetric(name=name, start_time=time.time())
        self.stages.append(stage)
        return stage

    def end_stage(self, name: str, success: bool, error: Optional[str] = None) -> None:
        for stage in reversed(self.stages):
            if stage.name == name and stage.end_time is None:
                stage.end_time = time.time()
                stage.success = success
                stage.error = error
                return

    @property
    def failed_stage(self) -> Optional[str]:
        for stage in self.stages:
            if stage.end_time is not None and not stage.success:
                return stage.name
        return None

    def get_summary(self) -> dict:
        completed = [s for s in self.stages if s.end_time is not None]
        return {
            "success": bool(completed) and all(s.success for s in completed),
            "failed_stage": self.failed_stage,
            "total_time_seconds": round(time.time() - self.start_time, 2),
            "captcha_attempts": self.captcha_attempts,
            "zone_retries": self.zone_retries,
            "stages": [
                {
                    "name": s.name,
                    "time_seconds": round((s.end_time or time.time()) - s.start_time, 2),
                    "success": s.success,
                    "error": s.error
                }
                for s in self.stages
            ]
        }

    def print_summary(self) -> None:
        s = self.get_summary()
        passed = sum(1 for st in s["stages"] if st["success"])
        print(f"\n{'='*50}")
        print(f"ONESTOP SEAT AGENT - RESULTS")
        print(f"{'='*50}")
        print(f"Outcome: {'BOOKED TO PAYMENT' if s['success'] else 'STOPPED at ' + str(s['failed_stage'])}")
        print(f"Stages: {passed}/{len(s['stages'])} passed")
        print(f"Total time: {s['total_time_seconds']:.1f}s")
        print(f"Captcha attempts: {s['captcha_attempts']}, zone retries: {s['zone_retries']}")
        print(f"{'='*50}\n")
